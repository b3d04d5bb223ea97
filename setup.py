# ~/braketctl_project/setup.py
from setuptools import setup, find_packages
from pathlib import Path

setup(
    name="braketctl",
    version="0.1.0",
    packages=find_packages(include=["braketctl", "braketctl.*", "braketctl_api", "braketctl_api.*"], exclude=["docs", "tests*", "examples*"]),
    package_data={"braketctl": ["config/default.yaml"]},
    install_requires=[
        "pydantic>=2.7.0,<3.0.0",  # Pydantic V2 validators are used for models and config
        "typer[all]>=0.12.0",
        "typing_extensions>=4.5",
        "pyyaml>=6.0",
        "amazon-braket-sdk>=1.80.0",  # Circuit.measure and braket.error_mitigation
        "boto3>=1.28.0",
        "numpy>=1.24",
        "scipy>=1.10",
        "fastapi>=0.110.0",
        "uvicorn>=0.29.0",
    ],
    extras_require={
        "test": [
            "pytest>=7.4",
            "httpx>=0.27.0",  # fastapi.testclient
        ],
    },
    entry_points={
        "console_scripts": [
            "braketctl = braketctl.cli.cli:app",
        ],
    },
    python_requires=">=3.9",
    author="Xan",
    author_email="your.email@example.com",
    description="braketctl: submit, track and store Amazon Braket quantum tasks from Python or the shell.",
    long_description=(Path(__file__).parent / "README.md").read_text() if (Path(__file__).parent / "README.md").exists() else "",
    long_description_content_type="text/markdown",
    classifiers=[
        "Programming Language :: Python :: 3",
        "Operating System :: OS Independent",
    ],
)

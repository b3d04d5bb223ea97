"""braketctl: submit, track and store Amazon Braket quantum tasks."""

__version__ = "0.1.0"

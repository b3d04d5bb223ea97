"""Minimal hybrid job entry point: `braketctl job create examples/job_script.py --hyperparameter shots=200`."""

import json
import os

from braket.aws import AwsDevice
from braket.circuits import Circuit
from braket.jobs import save_job_result


def main():
    hp_file = os.environ.get("AMZN_BRAKET_HP_FILE")
    hyperparameters = {}
    if hp_file:
        with open(hp_file) as f:
            hyperparameters = json.load(f)
    shots = int(hyperparameters.get("shots", "100"))

    device = AwsDevice(os.environ["AMZN_BRAKET_DEVICE_ARN"])
    task = device.run(Circuit().h(0).cnot(0, 1), shots=shots)
    save_job_result({"counts": dict(task.result().measurement_counts)})


if __name__ == "__main__":
    main()

"""
braketctl CLI – Amazon Braket task control
------------------------------------------
"""

import inspect  # To get docstrings
import json
from pathlib import Path
from typing import Dict, List, Optional

import typer
import yaml
from typing_extensions import Annotated

from ..api import core
from ..config import get_config
from ..errors import BraketCtlError, TaskNotFoundError
from ..hybrid import jobs as hybrid_jobs
from ..monitoring.logger import configure_logging
from ..storage import ResultStore

# Main Typer application instance
app = typer.Typer(
    name="braketctl",
    help="braketctl – submit, track and store Amazon Braket quantum tasks.",
    add_completion=True,
    no_args_is_help=True
)
store_app = typer.Typer(help="Read and write results in the configured S3 bucket.", no_args_is_help=True)
job_app = typer.Typer(help="Create and inspect Braket Hybrid Jobs.", no_args_is_help=True)
app.add_typer(store_app, name="store")
app.add_typer(job_app, name="job")

ModelArg = Annotated[Path, typer.Argument(
    help="Path to the JSON circuit model file.",
    exists=True,
    file_okay=True,
    dir_okay=False,
    readable=True,
    resolve_path=True
)]


def _fail(message: str) -> None:
    typer.secho(message, fg=typer.colors.RED, err=True)
    raise typer.Exit(code=1)


def _parse_inputs(values: Optional[List[str]]) -> Optional[Dict[str, float]]:
    """``["theta=0.5", "gamma=1"]`` -> ``{"theta": 0.5, "gamma": 1.0}``."""
    if not values:
        return None
    parsed: Dict[str, float] = {}
    for item in values:
        name, sep, raw = item.partition("=")
        if not sep or not name:
            raise typer.BadParameter(f"Expected NAME=VALUE, got '{item}'.", param_hint="--param")
        try:
            parsed[name.strip()] = float(raw)
        except ValueError:
            raise typer.BadParameter(f"Value for '{name}' is not a number: '{raw}'.", param_hint="--param") from None
    return parsed


def _echo_json(data) -> None:
    typer.echo(json.dumps(data, indent=2, default=str))


# --- Commands ---

@app.command(name="run", help="Submit a circuit model, wait for completion and print the measurement counts.")
def run(
    model: ModelArg,
    device: Annotated[str, typer.Option(help="Device name (local, local_dm, braket) or a Braket device ARN.")] = "local",
    shots: Annotated[Optional[int], typer.Option(help="Number of shots; defaults to the model's, then the config's.")] = None,
    param: Annotated[Optional[List[str]], typer.Option(help="Bind a free parameter, NAME=VALUE. Repeatable.")] = None,
    retries: Annotated[int, typer.Option(help="Max submission retries on transient AWS errors.")] = 3,
    debias: Annotated[Optional[bool], typer.Option("--debias/--no-debias", help="IonQ debias error mitigation; defaults to config.")] = None,
    save: Annotated[bool, typer.Option(help="Also write the counts to the configured S3 bucket.")] = False,
):
    """
    Submit a circuit model, wait for completion and print the counts as JSON.

    Examples:
      # Run on the local state-vector simulator (default device)
      braketctl run examples/bell.json

      # Run on the noisy local density-matrix simulator with 1000 shots
      braketctl run examples/ghz.json --device local_dm --shots 1000

      # Run on SV1 and keep the counts in S3
      braketctl run examples/bell.json --device arn:aws:braket:::device/quantum-simulator/amazon/sv1 --save
    """
    try:
        counts = core.run(
            model,
            device,
            shots=shots,
            inputs=_parse_inputs(param),
            max_retries=retries,
            debias=debias,
            save=save,
        )
    except (FileNotFoundError, BraketCtlError, ValueError, TimeoutError) as e:
        _fail(f"Error: {e}")
    _echo_json(counts)


@app.command(name="dispatch", help="Submit a circuit model and return its task ID immediately.")
def dispatch(
    model: ModelArg,
    device: Annotated[str, typer.Option(help="Device name (local, local_dm, braket) or a Braket device ARN.")] = "local",
    shots: Annotated[Optional[int], typer.Option(help="Number of shots; defaults to the model's, then the config's.")] = None,
    param: Annotated[Optional[List[str]], typer.Option(help="Bind a free parameter, NAME=VALUE. Repeatable.")] = None,
    retries: Annotated[int, typer.Option(help="Max submission retries on transient AWS errors.")] = 3,
    debias: Annotated[Optional[bool], typer.Option("--debias/--no-debias", help="IonQ debias error mitigation; defaults to config.")] = None,
):
    """
    Submit a circuit model without waiting. Check on it later with
    'braketctl status <ID>' and 'braketctl result <ID>'.

    Examples:
      # Queue a task on an IonQ QPU with debiasing
      braketctl dispatch examples/ghz.json --device arn:aws:braket:us-east-1::device/qpu/ionq/Forte-1 --debias
    """
    try:
        task_id = core.dispatch(
            model,
            device,
            shots=shots,
            inputs=_parse_inputs(param),
            max_retries=retries,
            debias=debias,
        )
    except (FileNotFoundError, BraketCtlError, ValueError) as e:
        _fail(f"Error: {e}")
    typer.echo(f"Task dispatched. ID: {typer.style(task_id, fg=typer.colors.GREEN)}")


@app.command(name="compile", help="Print the OpenQASM 3 program for a circuit model.")
def compile_model(
    model: ModelArg,
    param: Annotated[Optional[List[str]], typer.Option(help="Bind a free parameter, NAME=VALUE. Repeatable.")] = None,
):
    try:
        typer.echo(core.compile(model, inputs=_parse_inputs(param)))
    except (BraketCtlError, ValueError) as e:
        _fail(f"Error: {e}")


@app.command("devices", help="List registered devices, or search Amazon Braket with --remote.")
def list_devices(
    remote: Annotated[bool, typer.Option(help="Search Amazon Braket instead of listing local names.")] = False,
    status: Annotated[Optional[List[str]], typer.Option(help="Filter by status (ONLINE, OFFLINE, RETIRED).")] = None,
    type: Annotated[Optional[List[str]], typer.Option(help="Filter by type (QPU, SIMULATOR).")] = None,
    provider: Annotated[Optional[List[str]], typer.Option(help="Filter by provider name, e.g. IonQ.")] = None,
):
    """
    Examples:
      # Online QPUs only
      braketctl devices --remote --status ONLINE --type QPU
    """
    try:
        found = core.devices(remote=remote, statuses=status, types=type, providers=provider)
    except BraketCtlError as e:
        _fail(f"Error: {e}")

    if not remote:
        typer.echo("Available devices (from DEVICE_REGISTRY):")
        for d in found:
            typer.echo(f"  - {d['name']}")
        typer.echo("  - <any Braket device ARN>")
        return

    if not found:
        typer.echo(typer.style("  No devices matched.", fg=typer.colors.YELLOW))
        return
    for d in found:
        status_color = typer.colors.GREEN if d.get("status") == "ONLINE" else typer.colors.YELLOW
        typer.echo(
            f"  {d.get('name', 'N/A'):<14} | "
            f"{typer.style(str(d.get('status', 'N/A')), fg=status_color):<17} | "
            f"{str(d.get('type', 'N/A')):<10} | "
            f"{str(d.get('provider', 'N/A')):<14} | "
            f"qubits: {str(d.get('qubits') or '-'):>4} | "
            f"{d.get('arn', '')}"
        )


@app.command("status", help="Show the current state of a task.")
def show_status(task_id: Annotated[str, typer.Argument(help="Task ID or ARN.")]):
    try:
        typer.echo(core.status(task_id))
    except BraketCtlError as e:
        _fail(f"Error: {e}")


@app.command("result", help="Print the measurement counts of a finished task.")
def show_result(
    task_id: Annotated[str, typer.Argument(help="Task ID or ARN.")],
    wait: Annotated[bool, typer.Option(help="Block until the task finishes.")] = False,
):
    try:
        _echo_json(core.result(task_id, wait=wait))
    except (BraketCtlError, TimeoutError) as e:
        _fail(f"Error: {e}")


@app.command("cancel", help="Cancel a queued or running managed task.")
def cancel_task(task_id: Annotated[str, typer.Argument(help="Braket task ARN.")]):
    try:
        core.cancel(task_id)
    except (BraketCtlError, ValueError) as e:
        _fail(f"Error: {e}")
    typer.echo(f"Cancellation requested for {task_id}")


@app.command("logs", help="Show the stored JSON log for a specific task ID.")
def show_logs(task_id: Annotated[str, typer.Argument(help="The ID of the task to show logs for.")]):
    """
    Retrieve and display the JSON log for a previously submitted task.
    The log contains submission details, circuit, metrics, and completion status.
    """
    try:
        _echo_json(core.logs(task_id))
    except TaskNotFoundError as e:
        _fail(f"Error: {e}")


@app.command("tasks", help="List recent tasks or show detailed information for a specific task ID.")
def list_or_show_tasks(
    task_id: Annotated[Optional[str], typer.Argument(help="Specific task ID to show details for. If omitted, lists recent tasks.")] = None,
    limit: Annotated[int, typer.Option(help="Number of recent tasks to list.")] = 10
):
    if task_id:
        try:
            _echo_json(core.get_task(task_id))
        except TaskNotFoundError as e:
            _fail(str(e))
        return

    recent = core.tasks(limit=limit)
    if not recent:
        typer.echo("No tasks found in the database.")
        return
    typer.echo(f"Listing last {limit} tasks:")
    for r in recent:
        status_color = typer.colors.GREEN if r.get('status') == 'COMPLETED' else \
                       typer.colors.YELLOW if r.get('status') in ['CREATED', 'QUEUED', 'RUNNING', 'CANCELLING'] else \
                       typer.colors.RED
        typer.echo(
            f"  ID: {r.get('id', 'N/A')} | "
            f"Status: {typer.style(str(r.get('status', 'N/A')), fg=status_color):<20} | "
            f"Device: {r.get('device', 'N/A')} | "
            f"Shots: {r.get('shots', '-')} | "
            f"Submitted: {r.get('submitted', 'N/A')}"
        )


@app.command("optimize", help="Minimise a cost Hamiltonian over a parametric circuit model.")
def optimize(
    model: ModelArg,
    hamiltonian: Annotated[Path, typer.Argument(help="Path to the JSON Hamiltonian file.", exists=True, dir_okay=False, resolve_path=True)],
    device: Annotated[str, typer.Option(help="Device name or Braket device ARN.")] = "local",
    shots: Annotated[Optional[int], typer.Option(help="Shots per cost evaluation; defaults to config.")] = None,
    method: Annotated[Optional[str], typer.Option(help="scipy.optimize.minimize method; defaults to config.")] = None,
    maxiter: Annotated[Optional[int], typer.Option(help="Maximum optimiser iterations; defaults to config.")] = None,
    seed: Annotated[Optional[int], typer.Option(help="Seed for a random initial point (zeros otherwise).")] = None,
    param: Annotated[Optional[List[str]], typer.Option(help="Initial value, NAME=VALUE. Repeatable.")] = None,
    debias: Annotated[Optional[bool], typer.Option("--debias/--no-debias", help="IonQ debias error mitigation; defaults to config.")] = None,
):
    """
    Examples:
      # QAOA for MaxCut on a triangle, locally
      braketctl optimize examples/qaoa_triangle.json examples/maxcut_triangle.json --maxiter 30 --seed 7
    """
    try:
        outcome = core.optimize(
            model,
            hamiltonian,
            device,
            shots=shots,
            initial=_parse_inputs(param),
            method=method,
            maxiter=maxiter,
            seed=seed,
            debias=debias,
        )
    except (BraketCtlError, ValueError, TimeoutError) as e:
        _fail(f"Error: {e}")
    _echo_json(outcome.to_dict())


@app.command("config", help="Print the effective configuration.")
def show_config():
    typer.echo(yaml.safe_dump(get_config().model_dump(mode="json"), sort_keys=False))


# --- store sub-commands ---

@store_app.command("put", help="Save a finished task's counts to S3.")
def store_put(task_id: Annotated[str, typer.Argument(help="Task ID or ARN.")]):
    try:
        uri = core.save_result(task_id)
    except BraketCtlError as e:
        _fail(f"Error: {e}")
    typer.echo(uri)


@store_app.command("get", help="Read a task's counts back from S3.")
def store_get(task_id: Annotated[str, typer.Argument(help="Task ID or ARN.")]):
    try:
        _echo_json(core.load_result(task_id))
    except BraketCtlError as e:
        _fail(f"Error: {e}")


@store_app.command("ls", help="List stored result objects.")
def store_ls(prefix: Annotated[str, typer.Argument(help="Key prefix below the configured prefix.")] = ""):
    try:
        store = ResultStore.from_config()
        for key in store.list_keys(prefix):
            typer.echo(f"s3://{store.bucket}/{key}")
    except BraketCtlError as e:
        _fail(f"Error: {e}")


# --- hybrid job sub-commands ---

@job_app.command("create", help="Start a Braket Hybrid Job from a local script or package.")
def job_create(
    source: Annotated[str, typer.Argument(help="Source module: a .py file or a package directory.")],
    device: Annotated[Optional[str], typer.Option(help="Device ARN the job gets priority access to; defaults to config.")] = None,
    entry_point: Annotated[Optional[str], typer.Option(help="module:function to call, for package sources.")] = None,
    hyperparameter: Annotated[Optional[List[str]], typer.Option(help="Hyperparameter NAME=VALUE. Repeatable.")] = None,
    name: Annotated[Optional[str], typer.Option(help="Job name; generated when omitted.")] = None,
    wait: Annotated[bool, typer.Option(help="Block until the job finishes.")] = False,
):
    hyperparameters = {}
    for item in hyperparameter or []:
        key, sep, value = item.partition("=")
        if not sep or not key:
            raise typer.BadParameter(f"Expected NAME=VALUE, got '{item}'.", param_hint="--hyperparameter")
        hyperparameters[key] = value
    try:
        job = hybrid_jobs.create_job(
            source,
            device or get_config().braket.device,
            entry_point=entry_point,
            hyperparameters=hyperparameters or None,
            job_name=name,
            wait=wait,
        )
    except BraketCtlError as e:
        _fail(f"Error: {e}")
    typer.echo(f"Job created. ARN: {typer.style(job.arn, fg=typer.colors.GREEN)}")


@job_app.command("status", help="Show the state of a hybrid job.")
def job_status(job_arn: Annotated[str, typer.Argument(help="Hybrid job ARN.")]):
    try:
        typer.echo(hybrid_jobs.job_state(job_arn))
    except BraketCtlError as e:
        _fail(f"Error: {e}")


@job_app.command("result", help="Print the result a hybrid job saved.")
def job_result(job_arn: Annotated[str, typer.Argument(help="Hybrid job ARN.")]):
    try:
        _echo_json(hybrid_jobs.job_result(job_arn))
    except BraketCtlError as e:
        _fail(f"Error: {e}")


@app.command(name="commands", help="List all available braketctl commands with descriptions and examples.")
def list_all_commands():
    """
    Provides a detailed list of all available braketctl commands,
    their primary functions, and usage examples where available.
    """
    typer.echo(typer.style("Available braketctl Commands:", fg=typer.colors.BRIGHT_BLUE, bold=True))

    relevant_commands_info = [
        cmd_info for cmd_info in app.registered_commands
        if cmd_info.callback and cmd_info.name not in ["commands"]
    ]
    sorted_commands_info = sorted(relevant_commands_info, key=lambda cmd_info: cmd_info.name or "")

    for cmd_info in sorted_commands_info:
        cmd_name = cmd_info.name
        cmd_help = cmd_info.help or "No description provided."

        typer.echo(f"\n  {typer.style(str(cmd_name), fg=typer.colors.GREEN, bold=True)}")
        typer.echo(f"    {cmd_help}")

        docstring = inspect.getdoc(cmd_info.callback) or ""
        lines = docstring.splitlines()
        if any(line.strip().lower().startswith("examples:") for line in lines):
            start = next(i for i, line in enumerate(lines) if line.strip().lower().startswith("examples:"))
            example_lines = [line.strip() for line in lines[start + 1:] if line.strip()]
            if example_lines:
                typer.echo(typer.style("    Examples:", underline=True))
                for ex_line in example_lines:
                    typer.echo(f"      {ex_line}")

        typer.echo(f"    (For full options: braketctl {cmd_name} --help)")

    for group in app.registered_groups:
        typer.echo(f"\n  {typer.style(str(group.name), fg=typer.colors.GREEN, bold=True)} ...")
        typer.echo(f"    {group.typer_instance.info.help}")

    typer.echo(f"\nFor general help, type: {typer.style('braketctl --help', bold=True)}")


@app.callback()
def main_callback(
    verbose: Annotated[bool, typer.Option("--verbose", "-v", help="Log at DEBUG level to stderr.")] = False,
):
    """
    braketctl: submit circuits to Amazon Braket devices and keep track of the results.
    """
    configure_logging(verbose)


if __name__ == "__main__":
    app()

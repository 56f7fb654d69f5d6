"""List the provisioning steps."""

import click

from zimbrakit.output import OutputFormatter
from zimbrakit.sequencer import build_steps


@click.command("steps")
@click.pass_context
def steps(ctx: click.Context) -> None:
    """List the steps 'zimbrakit install' runs, in order."""
    formatter: OutputFormatter = ctx.obj["formatter"]

    data = [
        {"order": i, "step": step.step_id, "description": step.description}
        for i, step in enumerate(build_steps(), 1)
    ]
    formatter.table(
        data=data,
        columns=[("order", "#"), ("step", "Step"), ("description", "Description")],
        title="Provisioning Steps",
        message="Listed provisioning steps",
    )

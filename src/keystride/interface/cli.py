"""keystride CLI: inspect progress, generate exercises and run the API server."""

import dataclasses
import json
import logging
import random
import sys
from pathlib import Path
from typing import Annotated

import typer

from keystride.application.adaptive import Phase
from keystride.application.challenge_link import decode_challenge, generate_parent_challenge_text
from keystride.application.config import AppConfig, resolve_config
from keystride.application.engine import ProgressionEngine
from keystride.application.factory import get_engine
from keystride.application.norms import AGE_GROUPS, get_norms
from keystride.domain import keyboard
from keystride.domain.errors import UnknownModuleError

# ---------------------------------------------------------------------------
# Root app
# ---------------------------------------------------------------------------

app = typer.Typer(
    help="keystride: adaptive typing practice engine.",
    no_args_is_help=True,
    rich_markup_mode="rich",
)

# ---------------------------------------------------------------------------
# Logging
# ---------------------------------------------------------------------------

logging.basicConfig(
    level=logging.INFO,
    format="%(levelname)s:%(name)s:%(message)s",
    stream=sys.stderr,
)
logger = logging.getLogger(__name__)

# ---------------------------------------------------------------------------
# Subgroups
# ---------------------------------------------------------------------------

keys_app = typer.Typer(help="Per-key diagnostics.", no_args_is_help=True)
app.add_typer(keys_app, name="keys")

profile_app = typer.Typer(help="Learner profile.", no_args_is_help=True)
app.add_typer(profile_app, name="profile")

challenge_app = typer.Typer(help="Shareable caregiver challenges.", no_args_is_help=True)
app.add_typer(challenge_app, name="challenge")

config_app = typer.Typer(help="Manage keystride configuration.", no_args_is_help=True)
app.add_typer(config_app, name="config")


# ---------------------------------------------------------------------------
# Global callback
# ---------------------------------------------------------------------------


@app.callback()
def main_callback(
    ctx: typer.Context,
    state_file: Annotated[
        Path | None, typer.Option("--state-file", help="Progress file to use.")
    ] = None,
    verbose: Annotated[
        int,
        typer.Option(
            "--verbose", "-v", count=True, help="Increase verbosity. Repeat for more detail."
        ),
    ] = 1,
):
    """Global settings for keystride."""
    ctx.ensure_object(dict)
    ctx.obj["state_file"] = state_file
    ctx.obj["verbose"] = verbose
    if verbose > 1:
        logging.getLogger().setLevel(logging.DEBUG)


def _config(ctx: typer.Context, **overrides) -> AppConfig:
    obj = ctx.obj or {}
    return resolve_config({"state_file": obj.get("state_file"), **overrides})


def _engine(ctx: typer.Context, **overrides) -> ProgressionEngine:
    return get_engine(_config(ctx, **overrides))


def _echo_keys(keys: list[str]) -> None:
    if not keys:
        typer.echo("(none)")
        return
    typer.echo(" ".join(repr(k) if k.strip() != k or not k else k for k in keys))


# ---------------------------------------------------------------------------
# Root commands
# ---------------------------------------------------------------------------


@app.command()
def report(
    ctx: typer.Context,
    json_output: Annotated[bool, typer.Option("--json", help="Output as JSON.")] = False,
):
    """Weekly [bold green]report[/bold green] for a caregiver."""
    data = _engine(ctx).get_report()

    if json_output:
        typer.echo(json.dumps(dataclasses.asdict(data), indent=2))
        return

    typer.echo(data.summary)
    typer.echo(f"Keys learned: {data.keys_learned}  Streak: {data.streak}  Stars: {data.total_stars}")
    if data.compared_to_norm:
        typer.echo(f"Fluency change: {data.fluency_change:+d}%  Compared to age norm: {data.compared_to_norm}")
    for suggestion in data.suggestions:
        typer.secho(f"  - {suggestion}", fg="yellow")


@app.command()
def modules():
    """List curriculum modules in teaching order."""
    for i, module in enumerate(keyboard.load_modules(), start=1):
        keys = "".join(k for k in module.keys if k != " ")
        typer.echo(
            f"{i:2d}. {module.id:<14} {module.name:<16} "
            f"target {module.target_wpm} WPM / {module.target_accuracy}%  [{keys}]"
        )


@app.command()
def norms(
    age_group: Annotated[
        str | None, typer.Option(help=f"One of: {', '.join(AGE_GROUPS)}.")
    ] = None,
):
    """Show age-group benchmarks (defaults to the 10-11 norm)."""
    norm = get_norms(age_group)
    typer.echo(
        f"{norm.wpm} WPM, {norm.accuracy}% accuracy, {norm.session_minutes} min sessions"
    )


@app.command()
def exercise(
    ctx: typer.Context,
    module_id: Annotated[str, typer.Argument(help="Curriculum module id, e.g. home-ring.")],
    phase: Annotated[Phase, typer.Option(help="Content phase to generate.")] = Phase.DRILL,
    seed: Annotated[int | None, typer.Option(help="Seed for repeatable output.")] = None,
    count: Annotated[int, typer.Option(min=1, help="How many exercises.")] = 1,
):
    """Generate practice text for a module."""
    engine = _engine(ctx, seed=seed)
    try:
        for _ in range(count):
            typer.echo(engine.next_exercise(module_id, phase=phase).text)
    except UnknownModuleError as e:
        typer.secho(str(e), fg="red")
        raise typer.Exit(2)


@app.command()
def reset(
    ctx: typer.Context,
    force: Annotated[
        bool, typer.Option("--force", "-f", help="Bypass confirmation.")
    ] = False,
):
    """Erase all progress."""
    if not force and not typer.confirm("Erase all progress?"):
        raise typer.Exit(1)
    _engine(ctx).reset()
    typer.secho("Progress reset.", fg="green")


@app.command()
def serve(
    ctx: typer.Context,
    host: Annotated[str | None, typer.Option(help="Bind address.")] = None,
    port: Annotated[int | None, typer.Option(help="Port to listen on.")] = None,
):
    """Run the HTTP API."""
    import uvicorn

    config = _config(ctx, host=host, port=port)
    uvicorn.run("keystride.server:app", host=config.host, port=config.port, reload=False)


# ---------------------------------------------------------------------------
# Keys subgroup
# ---------------------------------------------------------------------------


@keys_app.command("mastered")
def keys_mastered(ctx: typer.Context):
    """Keys that are accurate and consistent."""
    _echo_keys(_engine(ctx).get_mastered_keys())


@keys_app.command("weak")
def keys_weak(
    ctx: typer.Context,
    threshold: Annotated[float, typer.Option(help="Accuracy below this is weak.")] = 0.75,
):
    """Keys below an accuracy threshold, weakest first."""
    _echo_keys(_engine(ctx).get_weak_keys(threshold))


@keys_app.command("due")
def keys_due(ctx: typer.Context):
    """Keys due for spaced review, weakest first."""
    _echo_keys(_engine(ctx).get_review_keys())


# ---------------------------------------------------------------------------
# Profile subgroup
# ---------------------------------------------------------------------------


@profile_app.command("show")
def profile_show(ctx: typer.Context):
    """Display the learner profile."""
    state = _engine(ctx).state
    d = {k: v for k, v in dataclasses.asdict(state.profile).items() if k != "extra"}
    d["stars"] = state.stars
    typer.echo(json.dumps(d, indent=2))


@profile_app.command("set")
def profile_set(
    ctx: typer.Context,
    name: Annotated[str | None, typer.Option(help="Display name.")] = None,
    age_group: Annotated[
        str | None, typer.Option(help=f"One of: {', '.join(AGE_GROUPS)}.")
    ] = None,
):
    """Update name and/or age group."""
    if age_group is not None and age_group not in AGE_GROUPS:
        typer.secho(f"Unknown age group {age_group!r}.", fg="red")
        raise typer.Exit(2)

    changes = {}
    if name is not None:
        changes["name"] = name
    if age_group is not None:
        changes["age_group"] = age_group
    if not changes:
        typer.secho("Nothing to change.", fg="yellow")
        return
    _engine(ctx).update_profile(**changes)
    typer.secho("Profile updated.", fg="green")


# ---------------------------------------------------------------------------
# Challenge subgroup
# ---------------------------------------------------------------------------


@challenge_app.command("encode")
def challenge_encode(ctx: typer.Context):
    """Print a shareable token built from the learner's toughest keys."""
    token = _engine(ctx).encode_challenge()
    if token is None:
        typer.secho("No weak keys yet; nothing to share.", fg="yellow")
        raise typer.Exit(1)
    typer.echo(token)


@challenge_app.command("decode")
def challenge_decode(token: Annotated[str, typer.Argument(help="Challenge token.")]):
    """Show the keys inside a token."""
    challenge = decode_challenge(token)
    if challenge is None:
        typer.secho("This challenge link is expired or invalid.", fg="red")
        raise typer.Exit(2)
    typer.echo(json.dumps({"keys": challenge.keys, "issued_at": challenge.issued_at}))


@challenge_app.command("text")
def challenge_text(
    token: Annotated[str, typer.Argument(help="Challenge token.")],
    seed: Annotated[int | None, typer.Option(help="Seed for repeatable output.")] = None,
):
    """Generate the practice text a token's recipient would type."""
    challenge = decode_challenge(token)
    if challenge is None:
        typer.secho("This challenge link is expired or invalid.", fg="red")
        raise typer.Exit(2)
    typer.echo(generate_parent_challenge_text(challenge.keys, random.Random(seed)))


# ---------------------------------------------------------------------------
# Config subgroup
# ---------------------------------------------------------------------------


@config_app.command("show")
def config_show(ctx: typer.Context):
    """Display final resolved configuration."""
    config = _config(ctx)
    d = {k: str(v) if isinstance(v, Path) else v for k, v in config.model_dump().items()}
    typer.echo(json.dumps(d, indent=2))

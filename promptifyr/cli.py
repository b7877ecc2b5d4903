"""
Purpose: CLI for the prompt challenge pipeline.
Description: Provides `promptifyr` commands to list challenges, register users, test and submit prompts,
inspect version history, show profiles and the leaderboard, take flawed-prompt quizzes and audit users.
Key Functions/Classes: Click entrypoints `promptifyr`, `submit`, `test`, `leaderboard`.
"""

from __future__ import annotations

import sys
from pathlib import Path
from typing import Optional

import click

from .audit import audit_user
from .calculator import score_breakdown
from .config import PromptifyrConfig, get_openrouter_api_key, load_config
from .errors import PromptifyrError
from .io_csv import write_leaderboard_csv
from .pipeline import SubmissionPipeline
from .run import build_oracle, build_pipeline


# AIDEV-NOTE: We use env var OPENROUTER_API_KEY for authentication.


def _pipeline(ctx: click.Context) -> SubmissionPipeline:
    cfg: PromptifyrConfig = ctx.obj
    oracle = build_oracle(cfg)
    ctx.call_on_close(oracle.close)
    return build_pipeline(cfg, oracle=oracle)


def _require_api_key() -> None:
    if not get_openrouter_api_key():
        click.echo("❌ Error: OpenRouter API key not found!")
        click.echo("   Set OPENROUTER_API_KEY environment variable")
        sys.exit(1)


def _fail(e: PromptifyrError) -> None:
    suffix = " (retryable)" if e.retryable else ""
    click.echo(f"❌ {type(e).__name__}: {e}{suffix}")
    sys.exit(1)


def _read_prompt(prompt: Optional[str], prompt_file: Optional[str]) -> str:
    if prompt_file:
        return Path(prompt_file).read_text(encoding="utf-8")
    if prompt is None:
        raise click.UsageError("Provide PROMPT or --prompt-file")
    return prompt


@click.group()
@click.option("--data-dir", type=click.Path(file_okay=False), default=None, help="Where users/versions JSONL live")
@click.option("--catalog", type=click.Path(exists=True, dir_okay=False), default=None, help="Challenge catalog YAML")
@click.pass_context
def promptifyr(ctx: click.Context, data_dir: Optional[str], catalog: Optional[str]) -> None:
    """Prompt engineering challenges: submit prompts, earn points and badges."""
    ctx.obj = load_config(
        data_dir=Path(data_dir) if data_dir else None,
        catalog_path=Path(catalog) if catalog else None,
    )


@promptifyr.command()
@click.option("--difficulty", type=click.Choice(["beginner", "intermediate", "advanced"]), default=None)
@click.option("--category", default=None)
@click.pass_context
def challenges(ctx: click.Context, difficulty: Optional[str], category: Optional[str]) -> None:
    """List active challenges."""
    pipeline = _pipeline(ctx)
    for c in pipeline.catalog.list(difficulty=difficulty, category=category):
        click.echo(f"{c.icon} {c.id:<28} {c.difficulty:<13} {c.points:>3} pts  {c.title}")


@promptifyr.command()
@click.argument("name")
@click.option("--user-id", default=None, help="Use a specific id instead of a generated one")
@click.pass_context
def register(ctx: click.Context, name: str, user_id: Optional[str]) -> None:
    """Create a user with zero points."""
    try:
        user = _pipeline(ctx).register_user(name, user_id=user_id)
    except PromptifyrError as e:
        _fail(e)
    click.echo(f"✅ Registered {user.name} ({user.id})")


@promptifyr.command()
@click.option("--user-id", required=True)
@click.option("--challenge-id", required=True)
@click.option("--prompt-file", type=click.Path(exists=True, dir_okay=False), default=None)
@click.argument("prompt", required=False)
@click.pass_context
def submit(ctx: click.Context, user_id: str, challenge_id: str, prompt_file: Optional[str], prompt: Optional[str]) -> None:
    """Submit a prompt for scoring."""
    _require_api_key()
    text = _read_prompt(prompt, prompt_file)
    try:
        result = _pipeline(ctx).submit(user_id, challenge_id, text)
    except PromptifyrError as e:
        _fail(e)
    v = result.version
    click.echo(f"📝 Version {v.version} scored {v.total}/100 ({v.grade_letter}, {v.performance_level})")
    if result.degraded:
        click.echo("⚠️  Evaluation output was unreadable; a neutral score was used")
    if result.completion_awarded:
        click.echo("🎯 Challenge completed!")
    for badge_id in result.badges_awarded:
        click.echo(f"🏅 Badge earned: {badge_id}")
    if result.points_awarded:
        click.echo(f"⭐ +{result.points_awarded} points")
    click.echo(f"💬 {v.feedback}")
    for flag in v.hallucination_flags:
        click.echo(f"   🚩 {flag}")
    for s in result.suggestions:
        click.echo(f"   💡 {s}")


@promptifyr.command(name="test")
@click.option("--user-id", required=True)
@click.option("--challenge-id", required=True)
@click.option("--prompt-file", type=click.Path(exists=True, dir_okay=False), default=None)
@click.argument("prompt", required=False)
@click.pass_context
def test_prompt(ctx: click.Context, user_id: str, challenge_id: str, prompt_file: Optional[str], prompt: Optional[str]) -> None:
    """Run a prompt without scoring it (saved as a draft version)."""
    _require_api_key()
    text = _read_prompt(prompt, prompt_file)
    try:
        result = _pipeline(ctx).test(user_id, challenge_id, text)
    except PromptifyrError as e:
        _fail(e)
    click.echo(f"🧪 Draft version {result.version.version}")
    click.echo(result.response)


@promptifyr.command()
@click.option("--user-id", required=True)
@click.option("--challenge-id", required=True)
@click.pass_context
def history(ctx: click.Context, user_id: str, challenge_id: str) -> None:
    """Show a user's versions for a challenge, newest first."""
    try:
        versions = _pipeline(ctx).history(user_id, challenge_id)
    except PromptifyrError as e:
        _fail(e)
    if not versions:
        click.echo("No versions yet")
    for v in versions:
        state = f"{v.total:>3}/100 {v.grade_letter}" if v.submitted else "  draft"
        click.echo(f"v{v.version:<4} {state}  {v.prompt_text[:60]}")


@promptifyr.command(name="show-version")
@click.option("--user-id", required=True)
@click.option("--challenge-id", required=True)
@click.option("--version", "version_number", required=True, type=int)
@click.pass_context
def show_version(ctx: click.Context, user_id: str, challenge_id: str, version_number: int) -> None:
    """Show one version with its score breakdown."""
    pipeline = _pipeline(ctx)
    try:
        v = pipeline.get_version(user_id, challenge_id, version_number)
        challenge = pipeline.catalog.get(challenge_id)
    except PromptifyrError as e:
        _fail(e)
    click.echo(f"Prompt: {v.prompt_text}")
    click.echo(f"Response: {v.response}")
    if v.subscores is not None:
        breakdown = score_breakdown(challenge.rubric, v.subscores)
        for name, item in breakdown["field_scores"].items():
            click.echo(f"  {name:<20} {item['value']:>5g} x {item['weight']}%")
        click.echo(f"  total {v.total} ({v.grade_letter})")
        click.echo(f"Feedback: {v.feedback}")


@promptifyr.command()
@click.option("--user-id", required=True)
@click.pass_context
def profile(ctx: click.Context, user_id: str) -> None:
    """Show points, level, badges and completed challenges."""
    try:
        p = _pipeline(ctx).profile(user_id)
    except PromptifyrError as e:
        _fail(e)
    click.echo(f"👤 {p.user.name}  level {p.level}  {p.user.points} pts ({p.points_to_next_level} to next level)")
    click.echo(f"   completed: {', '.join(p.user.completed_challenges) or '-'}")
    click.echo(f"   badges: {', '.join(p.user.badges) or '-'}")
    click.echo(f"   submissions: {p.submitted_count}  versions: {p.version_count}")


@promptifyr.command()
@click.option("--limit", type=int, default=None, help="Defaults to the configured page size")
@click.option("--csv", "csv_path", type=click.Path(dir_okay=False), default=None, help="Also export to CSV")
@click.pass_context
def leaderboard(ctx: click.Context, limit: Optional[int], csv_path: Optional[str]) -> None:
    """Rank users by points."""
    entries = _pipeline(ctx).top(limit)
    for e in entries:
        click.echo(f"{e.rank:>3}. {e.name:<20} {e.points:>6} pts  L{e.level}  🏅{e.badge_count}")
    if csv_path:
        count = write_leaderboard_csv(csv_path, entries)
        click.echo(f"📊 Exported {count} rows to: {csv_path}")


@promptifyr.command()
@click.option("--challenge-id", required=True)
@click.pass_context
def quiz(ctx: click.Context, challenge_id: str) -> None:
    """Quiz on what is wrong with a challenge's flawed example prompt."""
    _require_api_key()
    try:
        q = _pipeline(ctx).quiz(challenge_id)
    except PromptifyrError as e:
        _fail(e)
    click.echo(q.question)
    for idx, option in enumerate(q.options):
        click.echo(f"  {chr(ord('A') + idx)}. {option}")
    click.echo(f"Answer: {chr(ord('A') + q.correct_answer)}. {q.explanation}")


@promptifyr.command()
@click.option("--user-id", required=True)
@click.pass_context
def audit(ctx: click.Context, user_id: str) -> None:
    """Check a user's points, completions and badges against the version ledger."""
    pipeline = _pipeline(ctx)
    try:
        report = audit_user(pipeline.store, pipeline.catalog, user_id)
    except PromptifyrError as e:
        _fail(e)
    if report.consistent:
        click.echo("✅ Consistent with the ledger")
        return
    for diff in report.differences:
        click.echo(f"❌ {diff}")
    sys.exit(1)


if __name__ == "__main__":  # pragma: no cover
    promptifyr()

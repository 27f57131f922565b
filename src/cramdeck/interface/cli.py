"""cramdeck CLI: study sessions, deck management, stats and the cosmetics shop."""

import json
import logging
import sys
import time
from dataclasses import asdict
from datetime import datetime, time as dt_time, timezone
from pathlib import Path
from typing import Annotated

import typer

from cramdeck.application.card_list import CardFilter, card_status, list_cards, mastered_percent
from cramdeck.application.config import resolve_config
from cramdeck.application.factory import build_controller
from cramdeck.application.session import StudyController
from cramdeck.application.stats import StatsService
from cramdeck.domain.cosmetics import COSMETICS
from cramdeck.domain.models import Feedback, OptionSlot, Phase, utc_now
from cramdeck.infrastructure.catalog import CatalogError

# ---------------------------------------------------------------------------
# Root app
# ---------------------------------------------------------------------------

app = typer.Typer(
    help="cramdeck: deadline-aware spaced-repetition flashcards.",
    no_args_is_help=True,
    rich_markup_mode="rich",
)

# ---------------------------------------------------------------------------
# Logging
# ---------------------------------------------------------------------------

logging.basicConfig(
    level=logging.WARNING,
    format="%(levelname)s:%(name)s:%(message)s",
    stream=sys.stderr,
)
logger = logging.getLogger(__name__)

# ---------------------------------------------------------------------------
# Subgroups
# ---------------------------------------------------------------------------

settings_app = typer.Typer(help="View and change study settings.", no_args_is_help=True)
app.add_typer(settings_app, name="settings")

shop_app = typer.Typer(help="Spend gold on brain cosmetics.", no_args_is_help=True)
app.add_typer(shop_app, name="shop")

config_app = typer.Typer(help="Manage cramdeck configuration.")
app.add_typer(config_app, name="config")


# ---------------------------------------------------------------------------
# Global callback
# ---------------------------------------------------------------------------


@app.callback()
def main_callback(
    ctx: typer.Context,
    verbose: Annotated[
        int,
        typer.Option(
            "--verbose", "-v", count=True, help="Increase verbosity. Repeat for more detail."
        ),
    ] = 0,
    state_file: Annotated[
        Path | None, typer.Option(help="Progress file. Defaults to config.")
    ] = None,
    catalog: Annotated[
        Path | None, typer.Option(help="Deck catalog YAML. Defaults to the bundled catalog.")
    ] = None,
):
    """Global settings for cramdeck."""
    ctx.ensure_object(dict)
    ctx.obj["overrides"] = {
        "state_file": state_file,
        "catalog_path": catalog,
        "verbose": verbose or None,
    }


def _apply_verbosity(verbose: int) -> None:
    level = logging.WARNING if verbose == 0 else logging.INFO if verbose == 1 else logging.DEBUG
    logging.getLogger("cramdeck").setLevel(level)


def _controller(ctx: typer.Context) -> StudyController:
    overrides = (ctx.obj or {}).get("overrides", {})
    config = resolve_config(overrides)
    _apply_verbosity(config.verbose)
    try:
        return build_controller(config)
    except CatalogError as e:
        typer.secho(f"Error: {e}", fg="red")
        raise typer.Exit(1) from e


# ---------------------------------------------------------------------------
# Decks & cards
# ---------------------------------------------------------------------------


@app.command()
def decks(
    ctx: typer.Context,
    json_output: Annotated[bool, typer.Option("--json", help="Output as JSON.")] = False,
):
    """List decks with today's due counts."""
    controller = _controller(ctx)
    rows = StatsService(controller.state).deck_overview(utc_now())

    if json_output:
        typer.echo(
            json.dumps(
                [
                    {
                        "id": r.deck_id,
                        "name": r.name,
                        "cards": r.total_cards,
                        "suspended": r.suspended,
                        "new": r.new_due,
                        "reviews": r.reviews_due,
                        "due": r.total_due,
                    }
                    for r in rows
                ],
                indent=2,
            )
        )
        return

    if not rows:
        typer.secho("No decks in catalog.", fg="yellow")
        return
    for r in rows:
        icon = f"{r.icon} " if r.icon else ""
        typer.echo(
            f"{icon}{r.name} [{r.deck_id}]  cards={r.total_cards}  "
            f"due={r.total_due} (new {r.new_due}, reviews {r.reviews_due})"
            + (f"  suspended={r.suspended}" if r.suspended else "")
        )


@app.command()
def cards(
    ctx: typer.Context,
    deck_id: Annotated[str, typer.Argument(help="Deck id.")],
    card_filter: Annotated[
        CardFilter, typer.Option("--filter", "-f", help="Only show cards with this status.")
    ] = CardFilter.ALL,
    search: Annotated[str, typer.Option("--search", "-s", help="Match prompt or answer text.")] = "",
    json_output: Annotated[bool, typer.Option("--json", help="Output as JSON.")] = False,
):
    """List a deck's cards with their status and ids."""
    controller = _controller(ctx)
    deck = controller.state.find_deck(deck_id)
    if deck is None:
        typer.secho(f"Unknown deck: {deck_id}", fg="red")
        raise typer.Exit(1)

    rows = list_cards(deck, card_filter, search)

    if json_output:
        typer.echo(
            json.dumps(
                {
                    "deck_id": deck.id,
                    "mastered_percent": mastered_percent(deck),
                    "cards": [
                        {
                            "id": c.id,
                            "prompt": c.prompt,
                            "answer": c.answer,
                            "status": card_status(c),
                            "reps": c.reps,
                            "suspended": c.suspended,
                        }
                        for c in rows
                    ],
                },
                indent=2,
            )
        )
        return

    typer.echo(f"{deck.name} [{deck.id}]  {len(deck.cards)} cards, {mastered_percent(deck)}% mastered")
    if not rows:
        typer.secho("No matching cards.", fg="yellow")
        return
    for c in rows:
        typer.echo(f"  {c.id:<12} {card_status(c):<10} {c.prompt} -> {c.answer}")


@app.command()
def suspend(
    ctx: typer.Context,
    deck_id: Annotated[str, typer.Argument(help="Deck id.")],
    card_id: Annotated[str, typer.Argument(help="Card id.")],
):
    """Toggle suspension of a card."""
    controller = _controller(ctx)
    if not controller.toggle_suspend(deck_id, card_id):
        typer.secho(f"Card {deck_id}/{card_id} not found.", fg="red")
        raise typer.Exit(1)

    card = controller.state.find_deck(deck_id).find_card(card_id)
    typer.secho(f"{card_id} {'suspended' if card.suspended else 'resumed'}.", fg="green")


@app.command()
def reset(
    ctx: typer.Context,
    deck_id: Annotated[str, typer.Argument(help="Deck id.")],
    card_id: Annotated[str, typer.Argument(help="Card id.")],
):
    """Reset a card's progress so it comes back as new."""
    controller = _controller(ctx)
    if not controller.reset_card_progress(deck_id, card_id):
        typer.secho(f"Card {deck_id}/{card_id} not found.", fg="red")
        raise typer.Exit(1)
    typer.secho(f"Progress reset for {card_id}.", fg="green")


# ---------------------------------------------------------------------------
# Study
# ---------------------------------------------------------------------------


def _show_learn_card(controller: StudyController) -> None:
    view = controller.view()
    card = view.active_card
    typer.secho(f"\n[learn {view.original_size - view.learning_remaining + 1}/{view.original_size}]", fg="cyan")
    typer.echo(card.prompt)
    typer.secho(f"  -> {card.correct_option.value}: {card.answer}", fg="green")


def _show_quiz_card(controller: StudyController) -> None:
    view = controller.view()
    card = view.active_card
    typer.secho(
        f"\n[quiz {view.session_remaining} left of {view.original_size}]  gold={view.gold}", fg="cyan"
    )
    typer.echo(card.prompt)
    for slot in OptionSlot:
        if slot in view.eliminated:
            typer.secho(f"  {slot.value}) {card.options[slot.index]}", fg="bright_black", strikethrough=True)
        else:
            typer.echo(f"  {slot.value}) {card.options[slot.index]}")


@app.command()
def study(
    ctx: typer.Context,
    deck_id: Annotated[str, typer.Argument(help="Deck to study.")],
):
    """[bold green]Study[/bold green] today's due cards in a deck."""
    controller = _controller(ctx)
    if not controller.select_deck(deck_id):
        typer.secho(f"Unknown deck: {deck_id}", fg="red")
        raise typer.Exit(1)

    gold_before = controller.state.gold
    while True:
        view = controller.view()

        if view.phase is Phase.COMPLETE:
            if view.original_size == 0:
                typer.secho("No cards due today. Come back tomorrow!", fg="yellow")
            else:
                earned = controller.state.gold - gold_before
                typer.secho(
                    f"\nSession complete: {view.original_size} cards mastered, +{earned} gold.",
                    fg="green",
                )
            return

        if view.phase is Phase.LEARN:
            _show_learn_card(controller)
            reply = typer.prompt("Enter to continue, q to quit", default="", show_default=False)
            if reply.strip().lower() == "q":
                controller.close()
                typer.echo("Session abandoned. Progress so far is saved.")
                return
            controller.advance_learning()
            continue

        _show_quiz_card(controller)
        reply = typer.prompt("Answer (A-D, q to quit)").strip().upper()
        if reply == "Q":
            controller.close()
            typer.echo("Session abandoned. Progress so far is saved.")
            return
        if reply not in {s.value for s in OptionSlot}:
            typer.secho("Pick one of A, B, C or D.", fg="yellow")
            continue

        pending = controller.submit_answer(reply)
        if pending is None:
            continue
        if pending.kind is Feedback.CORRECT:
            typer.secho("Correct!", fg="green")
        else:
            typer.secho("Wrong, try again.", fg="red")
        time.sleep(pending.delay)
        pending.fire()


# ---------------------------------------------------------------------------
# Stats
# ---------------------------------------------------------------------------


@app.command()
def stats(
    ctx: typer.Context,
    json_output: Annotated[bool, typer.Option("--json", help="Output as JSON.")] = False,
):
    """Show study statistics."""
    controller = _controller(ctx)
    summary = StatsService(controller.state).summary(utc_now())

    if json_output:
        typer.echo(json.dumps(asdict(summary), indent=2))
        return

    typer.echo(f"Cards studied:   {summary.total_cards_studied}")
    typer.echo(f"Reviews:         {summary.total_reviews}")
    typer.echo(f"Perfect answers: {summary.perfect_answers} ({summary.accuracy_percent}%)")
    typer.echo(f"Streak:          {summary.streak} days (best {summary.longest_streak})")
    typer.echo(f"Gold:            {summary.gold} (earned {summary.total_gold_earned})")
    typer.echo(f"Today:           {summary.new_today} new, {summary.reviews_today} reviews")
    typer.echo(summary.deadline_status)


# ---------------------------------------------------------------------------
# Settings subgroup
# ---------------------------------------------------------------------------


@settings_app.command("show")
def settings_show(ctx: typer.Context):
    """Display the current study settings."""
    s = _controller(ctx).state.settings
    typer.echo(
        json.dumps(
            {
                "new_cards_per_day": s.new_cards_per_day,
                "reviews_per_day": s.reviews_per_day,
                "deadline": s.deadline.date().isoformat(),
            },
            indent=2,
        )
    )


@settings_app.command("set")
def settings_set(
    ctx: typer.Context,
    new: Annotated[int | None, typer.Option("--new", min=0, help="New cards per day.")] = None,
    reviews: Annotated[int | None, typer.Option("--reviews", min=0, help="Reviews per day.")] = None,
    deadline: Annotated[
        datetime | None,
        typer.Option("--deadline", formats=["%Y-%m-%d"], help="Target deadline date."),
    ] = None,
):
    """Change daily quotas or the deadline."""
    changes = {}
    if new is not None:
        changes["new_cards_per_day"] = new
    if reviews is not None:
        changes["reviews_per_day"] = reviews
    if deadline is not None:
        # End of the chosen day, so the deadline day itself is still schedulable
        changes["deadline"] = datetime.combine(deadline.date(), dt_time(23, 59, 59), tzinfo=timezone.utc)

    if not changes:
        typer.secho("Nothing to change.", fg="yellow")
        raise typer.Exit(2)

    controller = _controller(ctx)
    if not controller.update_settings(**changes):
        typer.secho("Settings rejected.", fg="red")
        raise typer.Exit(1)
    typer.secho("Settings updated.", fg="green")


# ---------------------------------------------------------------------------
# Shop subgroup
# ---------------------------------------------------------------------------


@shop_app.command("list")
def shop_list(ctx: typer.Context):
    """List cosmetics with price and ownership."""
    state = _controller(ctx).state
    typer.echo(f"Gold: {state.gold}")
    equipped = set(state.equipped_cosmetics.values())
    for c in COSMETICS:
        if c.id in equipped:
            mark = "equipped"
        elif c.id in state.owned_cosmetics:
            mark = "owned"
        else:
            mark = f"{c.cost} gold"
        typer.echo(f"  {c.id:<30} {c.name:<20} {mark}")


@shop_app.command("buy")
def shop_buy(
    ctx: typer.Context,
    cosmetic_id: Annotated[str, typer.Argument(help="Cosmetic id.")],
):
    """Buy a cosmetic."""
    controller = _controller(ctx)
    if not controller.buy_cosmetic(cosmetic_id):
        typer.secho(
            f"Cannot buy {cosmetic_id}: unknown, already owned, or not enough gold "
            f"(have {controller.state.gold}).",
            fg="red",
        )
        raise typer.Exit(1)
    typer.secho(f"Bought {cosmetic_id}. Gold left: {controller.state.gold}", fg="green")


@shop_app.command("equip")
def shop_equip(
    ctx: typer.Context,
    cosmetic_id: Annotated[str, typer.Argument(help="Cosmetic id.")],
):
    """Equip an owned cosmetic."""
    controller = _controller(ctx)
    if not controller.equip_cosmetic(cosmetic_id):
        typer.secho(f"Cannot equip {cosmetic_id}: unknown or not owned.", fg="red")
        raise typer.Exit(1)
    typer.secho(f"Equipped {cosmetic_id}.", fg="green")


@shop_app.command("add-gold", hidden=True)
def shop_add_gold(
    ctx: typer.Context,
    amount: Annotated[int, typer.Argument(help="Gold to add.")],
):
    """(Admin) Add gold for testing."""
    controller = _controller(ctx)
    if not controller.add_gold(amount):
        typer.secho("Amount must be positive.", fg="red")
        raise typer.Exit(1)
    typer.echo(f"Gold: {controller.state.gold}")


# ---------------------------------------------------------------------------
# Config subgroup & server
# ---------------------------------------------------------------------------


@config_app.command("show")
def config_show(ctx: typer.Context):
    """Display final resolved configuration."""
    config = resolve_config((ctx.obj or {}).get("overrides", {}))
    d = {k: str(v) if isinstance(v, Path) else v for k, v in config.model_dump().items()}
    typer.echo(json.dumps(d, indent=2))


@app.command()
def serve(
    port: Annotated[int, typer.Option(help="Port to bind the server to.")] = 8787,
    host: Annotated[str, typer.Option(help="Host to bind the server to.")] = "127.0.0.1",
    reload: Annotated[bool, typer.Option(help="Enable auto-reload.")] = False,
):
    """Run the HTTP study server."""
    import uvicorn

    uvicorn.run("cramdeck.server:app", host=host, port=port, reload=reload)

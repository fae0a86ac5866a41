"""
Interface en ligne de commande pour le moteur NLU.

Fournit des commandes pour analyser un texte, extraire un slot et inspecter
un modèle.
"""

import json
import sys
from pathlib import Path
from typing import Optional, Tuple

import click
from rich.console import Console
from rich.markup import escape
from rich.panel import Panel
from rich.table import Table

from .common.config import get_settings, reload_settings
from .common.errors import NLUEngineError, is_model_error
from .common.logging_utils import setup_logging
from .common.models import Slot
from .engine import NLUEngine

console = Console()


def _load_engine(model: str) -> NLUEngine:
    """Charge un moteur depuis un répertoire ou une archive zip."""
    path = Path(model)
    if path.is_file():
        return NLUEngine.from_zip(path)
    return NLUEngine.from_path(path)


def _fail(error: Exception) -> None:
    """Affiche l'erreur et quitte (code 2 pour un modèle invalide)."""
    console.print(f"[red]Erreur:[/red] {escape(str(error))}")
    sys.exit(2 if is_model_error(error) else 1)


def _format_range(slot: Slot) -> str:
    if slot.range is None:
        return "-"
    return f"[{slot.range.start}, {slot.range.end})"


def _slots_table(slots) -> Table:
    table = Table(title="Slots")
    table.add_column("Slot", style="cyan")
    table.add_column("Entité", style="magenta")
    table.add_column("Valeur brute", style="green")
    table.add_column("Valeur", style="blue")
    table.add_column("Intervalle")

    for slot in slots:
        value = slot.value.model_dump(mode="json", by_alias=True, exclude={"kind"})
        table.add_row(
            escape(slot.slot_name),
            escape(slot.entity),
            escape(slot.raw_value),
            escape(f"{slot.value.kind} {json.dumps(value, ensure_ascii=False)}"),
            _format_range(slot)
        )
    return table


@click.group()
@click.option('--config', '-c', help='Fichier de configuration YAML')
@click.option('--debug', '-d', is_flag=True, help='Mode debug')
def cli(config: Optional[str], debug: bool):
    """nlu-runtime - moteur d'inférence NLU."""
    settings = reload_settings(config) if config else get_settings()
    if debug:
        settings.debug = True
        settings.logging.level = "DEBUG"

    setup_logging(settings.logging, "nlu-runtime-cli")


@cli.command()
@click.argument('model')
@click.argument('text')
@click.option('--intent', '-i', 'intents', multiple=True, help='Intention autorisée (répétable)')
@click.option('--json', 'as_json', is_flag=True, help='Sortie JSON')
def parse(model: str, text: str, intents: Tuple[str, ...], as_json: bool):
    """Analyse un texte et affiche l'intention et les slots."""
    try:
        engine = _load_engine(model)
        result = engine.parse(text, intents or None)
    except NLUEngineError as e:
        _fail(e)
        return

    if as_json:
        click.echo(result.to_json(indent=2))
        return

    if not result.matched:
        console.print(f"[yellow]Aucune intention reconnue pour:[/yellow] {escape(text)}")
        return

    console.print(Panel(
        f"Intention: {escape(result.intent.intent_name)}\n"
        f"Probabilité: {result.intent.probability:.1%}\n"
        f"Texte: {escape(result.input)}",
        title="Intention détectée",
        border_style="green"
    ))
    if result.slots:
        console.print(_slots_table(result.slots))


@cli.command(name='extract-slot')
@click.argument('model')
@click.argument('text')
@click.argument('intent')
@click.argument('slot')
@click.option('--json', 'as_json', is_flag=True, help='Sortie JSON')
def extract_slot(model: str, text: str, intent: str, slot: str, as_json: bool):
    """Extrait directement un slot d'un texte."""
    try:
        engine = _load_engine(model)
        result = engine.extract_slot(text, intent, slot)
    except NLUEngineError as e:
        _fail(e)
        return

    if as_json:
        payload = None if result is None else result.model_dump(mode="json", by_alias=True)
        click.echo(json.dumps(payload, indent=2, ensure_ascii=False))
        return

    if result is None:
        console.print(f"[yellow]Aucune valeur trouvée pour le slot '{escape(slot)}'[/yellow]")
        return
    console.print(_slots_table([result]))


@cli.command()
@click.argument('model')
def info(model: str):
    """Affiche les intentions et slots d'un modèle."""
    try:
        engine = _load_engine(model)
    except NLUEngineError as e:
        _fail(e)
        return

    console.print(f"[blue]Langue:[/blue] {engine.language.value}")
    console.print(
        "[blue]Parseurs:[/blue] "
        + escape(", ".join(parser.unit_name for parser in engine.intent_parsers))
    )

    table = Table(title="Intentions")
    table.add_column("Intention", style="cyan")
    table.add_column("Slots", style="green")

    mappings = engine.dataset_metadata.slot_name_mappings
    for intent_name in engine.intents:
        slots = ", ".join(
            f"{slot_name} ({entity})" for slot_name, entity in mappings[intent_name].items()
        )
        table.add_row(escape(intent_name), escape(slots) if slots else "-")

    console.print(table)

    entities = engine.dataset_metadata.entities
    if entities:
        console.print("\n[yellow]Entités custom:[/yellow]")
        for name, entity in sorted(entities.items()):
            extensible = "extensible" if entity.automatically_extensible else "fermée"
            console.print(f"  {escape(name)}: {extensible}")


if __name__ == '__main__':
    cli()

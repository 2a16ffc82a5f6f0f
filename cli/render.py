from __future__ import annotations

from typing import Any, Dict, Iterable, Sequence

import typer


def echo_heading(text: str) -> None:
    typer.secho(text, bold=True)


def echo_key_values(pairs: Iterable[tuple[str, Any]]) -> None:
    for key, value in pairs:
        typer.echo(f"{key}: {'' if value is None else value}")


def render_document(title: str, document: Dict[str, Any]) -> None:
    echo_heading(title)
    echo_key_values(document.items())


def render_documents(title: str, documents: Sequence[Dict[str, Any]]) -> None:
    echo_heading(f"{title} ({len(documents)})")
    if not documents:
        typer.echo("No entries.")
        return
    for document in documents:
        typer.echo()
        echo_key_values(document.items())

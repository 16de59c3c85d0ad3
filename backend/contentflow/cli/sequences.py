"""CLI utilities for content code sequence maintenance."""

# purpose: let administrators inspect, reseed and draw from namespace counters
# status: active
# depends_on: contentflow.database, contentflow.services.sequence_allocator

from __future__ import annotations

import json

import typer
from sqlalchemy.orm import Session

from ..database import SessionLocal
from ..services import sequence_allocator

app = typer.Typer(help="Content code sequence maintenance commands")


def session_factory() -> Session:
    return SessionLocal()


def reseed_namespaces(namespaces: list[str]) -> dict[str, int]:
    """Raise each namespace counter past its highest issued code."""

    session = session_factory()
    try:
        summary = {}
        for namespace in namespaces:
            counter = sequence_allocator.reseed_counter(session, namespace)
            summary[counter.namespace_code] = counter.next_value
        session.commit()
        return summary
    finally:
        session.close()


@app.command("reseed")
def reseed_command(
    namespaces: list[str] = typer.Argument(None, help="Namespaces to reseed; defaults to every known counter"),
) -> None:
    """CLI wrapper for :func:`reseed_namespaces`."""

    if not namespaces:
        session = session_factory()
        try:
            namespaces = [counter.namespace_code for counter in sequence_allocator.list_counters(session)]
        finally:
            session.close()
    typer.echo(json.dumps(reseed_namespaces(namespaces), sort_keys=True))


@app.command("allocate")
def allocate_command(
    namespace: str = typer.Argument(..., help="Namespace (profile code) to allocate in"),
    count: int = typer.Option(1, min=1, help="Number of identifiers to reserve"),
) -> None:
    """Reserve identifiers and record them in the ledger."""

    session = session_factory()
    try:
        resolved = sequence_allocator.resolve_namespace(session, namespace)
        identifiers = []
        for _ in range(count):
            identifier = sequence_allocator.allocate_identifier(session, resolved)
            sequence_allocator.register_identifier(session, identifier, namespace=resolved)
            identifiers.append(identifier)
        session.commit()
    finally:
        session.close()
    for identifier in identifiers:
        typer.echo(identifier)


@app.command("list")
def list_command() -> None:
    session = session_factory()
    try:
        rows = {
            counter.namespace_code: counter.next_value
            for counter in sequence_allocator.list_counters(session)
        }
    finally:
        session.close()
    typer.echo(json.dumps(rows, sort_keys=True))


if __name__ == "__main__":
    app()

from __future__ import annotations
import logging
from typing import Optional

import typer

from pqcguard import (
    Family,
    KeyEncapsulationSession,
    PQCError,
    RandomSource,
    SignatureSession,
    get_engine,
    get_registry,
)

app = typer.Typer(add_completion=False, help="pqcguard: liboqs session toolkit")

_FAMILIES = ("kem", "sig", "all")


@app.callback()
def main(
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Enable debug logging."),
) -> None:
    if verbose:
        logging.basicConfig(level=logging.DEBUG, format="%(levelname)s %(name)s: %(message)s")


def _families(family: str) -> list[Family]:
    if family not in _FAMILIES:
        raise typer.BadParameter(f"family must be one of {', '.join(_FAMILIES)}")
    if family == "all":
        return [Family.KEM, Family.SIG]
    return [Family(family)]


@app.command("list-algos")
def list_algos(
    family: str = typer.Option("all", "--family", "-f", help="kem, sig or all."),
    enabled_only: bool = typer.Option(False, "--enabled-only", help="Hide supported-but-disabled algorithms."),
):
    """List the algorithms compiled into liboqs."""
    registry = get_registry()
    for fam in _families(family):
        typer.echo("KEM mechanisms:" if fam is Family.KEM else "SIG mechanisms:")
        names = registry.enabled_identifiers(fam) if enabled_only else registry.supported_identifiers(fam)
        for name in names:
            suffix = "" if registry.is_enabled(name, fam) else " (disabled)"
            typer.echo(f"- {name}{suffix}")


def _session_for(name: str):
    registry = get_registry()
    if registry.is_supported(name, Family.KEM):
        return KeyEncapsulationSession(name)
    return SignatureSession(name)


@app.command()
def details(name: str):
    """Print the details liboqs reports for NAME."""
    try:
        with _session_for(name) as session:
            typer.echo(str(session.details))
    except PQCError as exc:
        typer.echo(f"error: {exc}", err=True)
        raise typer.Exit(code=1)


@app.command()
def demo(name: str, message: str = typer.Option("hello", help="Message to sign for signature schemes.")):
    """Round-trip NAME once (key pair + encapsulate/decapsulate or sign/verify)."""
    try:
        with _session_for(name) as session:
            public_key = session.generate_keypair()
            if isinstance(session, KeyEncapsulationSession):
                ciphertext, secret = session.encap_secret(public_key)
                ok = session.decap_secret(ciphertext) == secret
                typer.echo(f"[KEM] {name}: {'ok' if ok else 'MISMATCH'}")
            else:
                signature = session.sign(message.encode())
                ok = session.verify(message.encode(), signature, public_key)
                typer.echo(f"[SIG] {name}: verify={ok} ({len(signature)} bytes)")
    except PQCError as exc:
        typer.echo(f"error: {exc}", err=True)
        raise typer.Exit(code=1)
    if not ok:
        raise typer.Exit(code=2)


@app.command()
def random(
    count: int = typer.Argument(32, min=0, help="Number of bytes."),
    algorithm: Optional[str] = typer.Option(None, "--algorithm", "-a", help="Built-in RNG, e.g. system or OpenSSL."),
):
    """Print COUNT random bytes from liboqs as hex."""
    source = RandomSource()
    try:
        if algorithm:
            source.switch_algorithm(algorithm)
        typer.echo(source.bytes(count).hex())
    except PQCError as exc:
        typer.echo(f"error: {exc}", err=True)
        raise typer.Exit(code=1)


@app.command()
def version():
    """Print the liboqs version."""
    typer.echo(get_engine().version())


def app_main():
    app()


if __name__ == "__main__":
    app_main()

"""
Command-line interface for the VC toolkit.

Usage:
    vc-cli did generate contoso.com/organizations/contoso --algorithm ES384
    vc-cli did verify did:web:contoso.com
    vc-cli credential sign credential.json
    vc-cli credential verify credential.vc.jwt.txt --schema schema.yaml
    vc-cli presentation create ./credentials --expires-in 3600
    vc-cli presentation verify presentation.vp.jwt.txt --schema mtr.yaml --validate-schema
"""

from __future__ import annotations

import asyncio
import functools
import json
import logging
import sys
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Callable, TypeVar

import click
from rich.console import Console
from rich.logging import RichHandler
from rich.panel import Panel
from rich.table import Table

from vc_toolkit import __version__
from vc_toolkit.config import Settings, expand_path
from vc_toolkit.controller import build_controller_document, did_from_domain
from vc_toolkit.credential import BASE_CREDENTIAL_TYPE, create_presentation, issue_credential
from vc_toolkit.did_resolver import ControllerResolver, did_to_url
from vc_toolkit.errors import (
    ConfigurationError,
    ControllerNotFoundError,
    SchemaValidationError,
    VCToolkitError,
)
from vc_toolkit.keys import (
    Algorithm,
    PrivateKey,
    export_public_key,
    generate_private_key,
    load_private_keys,
)
from vc_toolkit.schema_resolver import SchemaResolver, load_schema_file
from vc_toolkit.verifier import (
    CredentialVerifier,
    PresentationVerifier,
    check_validity_window,
    extract_did,
    is_numeric_date,
)

console = Console()
err_console = Console(stderr=True)

T = TypeVar("T")

CREDENTIAL_SUFFIX = ".vc.jwt.txt"
PRESENTATION_SUFFIX = ".vp.jwt.txt"


def _run(func: Callable[..., T]) -> Callable[..., T]:
    """Map toolkit errors to their exit status."""

    @functools.wraps(func)
    def wrapper(*args: Any, **kwargs: Any) -> T:
        try:
            return func(*args, **kwargs)
        except VCToolkitError as e:
            err_console.print(f"[red]Error ({type(e).__name__}):[/] {e.message}")
            for schema_error in getattr(e, "errors", []):
                err_console.print(f"  [red]x[/] {schema_error}")
            sys.exit(e.exit_code)

    return wrapper


def _configure_logging(verbose: bool) -> None:
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format="%(message)s",
        handlers=[RichHandler(console=err_console, show_path=False)],
        force=True,
    )


def _timestamp() -> str:
    return datetime.now(timezone.utc).strftime("%Y-%m-%dT%H-%M-%S")


def _read_text(path: Path) -> str:
    if not path.is_file():
        raise click.ClickException(f"File not found: {path}")
    return path.read_text(encoding="utf-8").strip()


def _write_json(path: Path, data: Any) -> None:
    path.write_text(json.dumps(data, indent=2) + "\n", encoding="utf-8")


def _format_epoch(value: Any) -> str:
    try:
        return datetime.fromtimestamp(value, tz=timezone.utc).isoformat()
    except (OverflowError, OSError, ValueError):
        return str(value)


def _credential_table(credential: dict[str, Any]) -> Table:
    table = Table(show_header=False, box=None, padding=(0, 2))
    table.add_column("Field", style="dim")
    table.add_column("Value")

    table.add_row("Issuer", extract_did(credential.get("issuer")) or "-")

    types = credential.get("type", [])
    if isinstance(types, list):
        types = ", ".join(str(t) for t in types if t != BASE_CREDENTIAL_TYPE)
    table.add_row("Type", str(types))

    if credential.get("validFrom"):
        table.add_row("Valid From", str(credential["validFrom"]))
    elif is_numeric_date(credential.get("nbf")):
        table.add_row("Valid From", _format_epoch(credential["nbf"]))

    if credential.get("validUntil"):
        table.add_row("Valid Until", str(credential["validUntil"]))
    elif is_numeric_date(credential.get("exp")):
        table.add_row("Valid Until", _format_epoch(credential["exp"]))

    return table


def _add_schema_file(schema_resolver: SchemaResolver, schema_file: str) -> str:
    """Register a schema file under its $id (or its path) and return that id."""
    path = expand_path(schema_file)
    schema = load_schema_file(path)
    schema_id = schema.get("$id")
    if not isinstance(schema_id, str) or not schema_id:
        schema_id = str(path)
    schema_resolver.add_schema(schema_id, schema)
    return schema_id


def _load_role_key(settings: Settings, private_key: str | None, role: str) -> PrivateKey:
    key_path = expand_path(private_key) if private_key else settings.private_key_path
    if key_path is None:
        raise ConfigurationError(
            "Private key path not specified. Set VC_CLI_PRIVATE_KEY_PATH or use --private-key."
        )
    keys = load_private_keys(key_path)
    if role not in keys:
        raise ConfigurationError(f"{role.capitalize()} key not found in private key file")
    return keys[role]


@click.group()
@click.option("-v", "--verbose", is_flag=True, help="Enable debug logging")
@click.option(
    "--timeout",
    type=float,
    default=None,
    help="HTTP request timeout in seconds (default: VC_CLI_HTTP_TIMEOUT or 10)",
)
@click.version_option(__version__)
@click.pass_context
def main(ctx: click.Context, verbose: bool, timeout: float | None) -> None:
    """Issue and verify did:web Verifiable Credentials."""
    _configure_logging(verbose)
    try:
        settings = Settings.from_env()
    except ConfigurationError as e:
        raise click.ClickException(e.message) from e
    if timeout is not None:
        settings.http_timeout = timeout
    ctx.obj = settings


@main.command()
def version() -> None:
    """Show version information."""
    console.print(f"Verifiable Supply Chain Toolkit v{__version__}")


# =============================================================================
# did
# =============================================================================


@main.group()
def did() -> None:
    """Generate and check did:web identifiers."""


@did.command("generate")
@click.argument("domain")
@click.option(
    "--algorithm",
    type=click.Choice([a.value for a in Algorithm], case_sensitive=False),
    default="ES256",
    show_default=True,
    help="Signature algorithm for both keys",
)
@click.option("--lei", default=None, help="Legal Entity Identifier added to alsoKnownAs")
@click.option("--output-path", default=None, help="Base directory for the generated files")
@click.pass_obj
@_run
def did_generate(
    settings: Settings,
    domain: str,
    algorithm: str,
    lei: str | None,
    output_path: str | None,
) -> None:
    """Generate a did:web identifier with assertion and authentication keys.

    DOMAIN may include a path, e.g. contoso.com/organizations/contoso.
    """
    try:
        did_id = did_from_domain(domain)
    except ValueError as e:
        raise click.BadParameter(str(e), param_hint="DOMAIN") from e

    assertion_key = generate_private_key(algorithm)
    authentication_key = generate_private_key(algorithm)
    assertion_public = export_public_key(assertion_key)
    authentication_public = export_public_key(authentication_key)

    document = build_controller_document(did_id, assertion_public, authentication_public, lei=lei)

    base_dir = expand_path(output_path) if output_path else settings.resolve_output_dir()
    key_dir = base_dir / did_id.replace(":", "-")
    key_dir.mkdir(parents=True, exist_ok=True)

    _write_json(key_dir / "did.json", document.to_dict())
    _write_json(
        key_dir / "private-key.json",
        {"assertion": assertion_key.to_dict(), "authentication": authentication_key.to_dict()},
    )
    _write_json(
        key_dir / "public-key.json",
        {"assertion": assertion_public.to_dict(), "authentication": authentication_public.to_dict()},
    )

    console.print(f"[bold]DID:[/] {did_id}")
    console.print(f"[bold]Host at:[/] {did_to_url(did_id)}")
    console.print_json(data=document.to_dict())
    console.print(f"\n[green]Files saved to[/] {key_dir}")


@did.command("verify")
@click.argument("did_id", metavar="DID")
@click.option("--show-document", is_flag=True, help="Print the fetched document")
@click.pass_obj
@_run
def did_verify(settings: Settings, did_id: str, show_document: bool) -> None:
    """Check that a did:web identifier is properly hosted."""
    url = did_to_url(did_id)
    console.print(f"Fetching: {url}")

    resolver = ControllerResolver(timeout=settings.http_timeout)
    document = asyncio.run(resolver.fetch_controller_document(did_id))

    problems = document.validate()
    if problems:
        for problem in problems:
            err_console.print(f"  [red]x[/] {problem}")
        raise ControllerNotFoundError(f"Invalid controller document for {did_id}")

    table = Table(show_header=False, box=None, padding=(0, 2))
    table.add_column("Field", style="dim")
    table.add_column("Value")
    table.add_row("ID", document.id)
    table.add_row("Verification methods", str(len(document.verification_methods)))
    if document.also_known_as:
        table.add_row("Also known as", ", ".join(document.also_known_as))
    console.print(Panel(table, title="DID verified", border_style="green"))

    if show_document:
        console.print_json(data=document.to_dict())


# =============================================================================
# credential
# =============================================================================


@main.group()
def credential() -> None:
    """Sign and verify credentials."""


@credential.command("sign")
@click.argument("credential_file", type=click.Path(dir_okay=False))
@click.option("--issuer", default=None, help="Issuer DID (default: credential issuer or VC_CLI_ISSUER_DID)")
@click.option("--private-key", default=None, help="Path to private-key.json")
@click.option("--output-path", default=None, help="Directory for the signed credential")
@click.pass_obj
@_run
def credential_sign(
    settings: Settings,
    credential_file: str,
    issuer: str | None,
    private_key: str | None,
    output_path: str | None,
) -> None:
    """Sign an unsigned credential JSON file."""
    path = expand_path(credential_file)
    try:
        unsigned = json.loads(_read_text(path))
    except json.JSONDecodeError as e:
        raise click.ClickException(f"Invalid JSON: {e}") from e

    for required in ("@context", "type", "credentialSubject"):
        if not unsigned.get(required):
            raise click.ClickException(f"Missing required field: {required}")

    issuer_did = issuer or extract_did(unsigned.get("issuer")) or settings.issuer_did
    if not issuer_did:
        raise ConfigurationError("Issuer DID not specified. Set VC_CLI_ISSUER_DID or use --issuer.")
    assertion_key = _load_role_key(settings, private_key, "assertion")

    types = unsigned["type"] if isinstance(unsigned["type"], list) else [unsigned["type"]]
    signed = issue_credential(
        issuer_did,
        assertion_key,
        types,
        unsigned["credentialSubject"],
        valid_from=unsigned.get("validFrom"),
        valid_until=unsigned.get("validUntil"),
        credential_schema=unsigned.get("credentialSchema"),
    )

    out_dir = expand_path(output_path) if output_path else settings.resolve_output_dir("credentials")
    out_dir.mkdir(parents=True, exist_ok=True)
    base_name = path.name.split(".")[0]
    out_file = out_dir / f"{base_name}-signed-{_timestamp()}{CREDENTIAL_SUFFIX}"
    out_file.write_text(signed, encoding="utf-8")

    console.print(f"[green]Signed credential:[/] {out_file}")


@credential.command("verify")
@click.argument("credential_file", type=click.Path(dir_okay=False))
@click.option("--schema", "schema_file", default=None, help="JSON Schema (YAML or JSON) to validate against")
@click.option("--validate-schema", is_flag=True, help="Validate against the credentialSchema entries")
@click.option("--json-output", is_flag=True, help="Output the verified credential as JSON")
@click.pass_obj
@_run
def credential_verify(
    settings: Settings,
    credential_file: str,
    schema_file: str | None,
    validate_schema: bool,
    json_output: bool,
) -> None:
    """Verify a signed credential (DID resolution, signature, schema)."""
    jws_string = _read_text(expand_path(credential_file))

    schema_resolver = SchemaResolver()
    schema_id = _add_schema_file(schema_resolver, schema_file) if schema_file else None

    verifier = CredentialVerifier(
        ControllerResolver(timeout=settings.http_timeout), schema_resolver
    )
    verified = asyncio.run(verifier.verify(jws_string, validate_schema=validate_schema))

    if schema_id is not None:
        errors = schema_resolver.resolve_schema(schema_id).validate(verified)
        if errors:
            raise SchemaValidationError(f"Credential does not match schema {schema_id}", errors)

    if json_output:
        console.print_json(data=verified)
        return

    table = _credential_table(verified)
    table.add_row("Signature", "[green]Valid[/]")
    if schema_id is not None or validate_schema:
        table.add_row("Schema", "[green]Valid[/]")
    console.print(Panel(table, title="Credential verified", border_style="green"))


# =============================================================================
# presentation
# =============================================================================


@main.group()
def presentation() -> None:
    """Create and verify presentations."""


def _collect_credential_files(inputs: tuple[str, ...]) -> list[Path]:
    files: list[Path] = []
    for item in inputs:
        path = expand_path(item)
        if not path.exists():
            raise click.ClickException(f"Path not found: {path}")
        if path.is_dir():
            found = sorted(p for p in path.iterdir() if p.name.endswith(CREDENTIAL_SUFFIX))
            if not found:
                raise click.ClickException(
                    f"No credential files (*{CREDENTIAL_SUFFIX}) found in directory: {path}"
                )
            files.extend(found)
        else:
            files.append(path)
    return files


@presentation.command("create")
@click.argument("credential_files", nargs=-1, required=True)
@click.option("--holder", default=None, help="Holder DID (default: VC_CLI_ISSUER_DID)")
@click.option("--private-key", default=None, help="Path to private-key.json")
@click.option("--expires-in", type=int, default=None, help="Presentation lifetime in seconds")
@click.option("--output-path", default=None, help="Directory for the signed presentation")
@click.pass_obj
@_run
def presentation_create(
    settings: Settings,
    credential_files: tuple[str, ...],
    holder: str | None,
    private_key: str | None,
    expires_in: int | None,
    output_path: str | None,
) -> None:
    """Package credentials (files or directories) into a signed presentation."""
    holder_did = holder or settings.issuer_did
    if not holder_did:
        raise ConfigurationError("Holder DID not specified. Set VC_CLI_ISSUER_DID or use --holder.")
    authentication_key = _load_role_key(settings, private_key, "authentication")

    paths = _collect_credential_files(credential_files)
    credentials = [_read_text(p) for p in paths]

    verifier = CredentialVerifier(ControllerResolver(timeout=settings.http_timeout))

    async def validate_all() -> None:
        for path, jws_string in zip(paths, credentials):
            verified = await verifier.verify(jws_string)
            check_validity_window(verified)
            console.print(f"  [green]v[/] Valid: {path.name}")

    asyncio.run(validate_all())

    signed = create_presentation(holder_did, authentication_key, credentials, expires_in=expires_in)

    out_dir = (
        expand_path(output_path) if output_path else settings.resolve_output_dir("presentations")
    )
    out_dir.mkdir(parents=True, exist_ok=True)
    out_file = out_dir / f"presentation-{_timestamp()}{PRESENTATION_SUFFIX}"
    out_file.write_text(signed, encoding="utf-8")

    console.print(f"[green]Presentation:[/] {out_file}")


@presentation.command("verify")
@click.argument("presentation_file", type=click.Path(dir_okay=False))
@click.option(
    "--schema",
    "schema_files",
    multiple=True,
    help="JSON Schema (YAML or JSON) matched to credentialSchema ids by $id; repeatable",
)
@click.option("--validate-schema", is_flag=True, help="Validate credentialSchema entries")
@click.pass_obj
@_run
def presentation_verify(
    settings: Settings,
    presentation_file: str,
    schema_files: tuple[str, ...],
    validate_schema: bool,
) -> None:
    """Verify a signed presentation and every credential in it."""
    jws_string = _read_text(expand_path(presentation_file))

    schema_resolver = SchemaResolver()
    for schema_file in schema_files:
        _add_schema_file(schema_resolver, schema_file)

    verifier = PresentationVerifier(
        ControllerResolver(timeout=settings.http_timeout), schema_resolver
    )
    result = asyncio.run(verifier.verify(jws_string, validate_schema=validate_schema))

    table = Table(show_header=False, box=None, padding=(0, 2))
    table.add_column("Field", style="dim")
    table.add_column("Value")
    table.add_row("Holder", result.holder)
    if "exp" in result.presentation:
        table.add_row("Expires", _format_epoch(result.presentation["exp"]))
    table.add_row("Credentials", str(len(result.credentials)))
    console.print(Panel(table, title="Presentation verified", border_style="green"))

    for verified in result.credentials:
        console.print(Panel(_credential_table(verified), border_style="dim"))


if __name__ == "__main__":
    main()

"""CLI package for TokenForge."""

from __future__ import annotations

import asyncio
import json
import logging
from dataclasses import dataclass
from importlib import metadata
from pathlib import Path

import typer

from tokenforge import __version__
from tokenforge.core import (
    DEFAULT_CONFIG_DIR,
    NETWORK_NAMES,
    ConfigManager,
    ConfigurationError,
    LaunchFailedError,
    LaunchSettings,
    LogBuffer,
    ValidationError,
    normalize_network,
    supports_airdrop,
)
from tokenforge.core.logs import LogEntry
from tokenforge.launch import TokenLaunchRequest, launch_token_sync
from tokenforge.solana import KeystoreSigner, SolanaRPCClient, SolanaRPCError, WalletError, WalletManager

from .branding import create_result_panel, create_semantic_panel, format_log_entry, themed_console

app = typer.Typer(help="Launch Token-2022 tokens with on-chain metadata.", no_args_is_help=True)
network_app = typer.Typer(help="Show or change the selected network.", no_args_is_help=True)
wallet_app = typer.Typer(help="Manage the local keystore wallet.", no_args_is_help=True)
app.add_typer(network_app, name="network")
app.add_typer(wallet_app, name="wallet")

CLI_CONSOLE = themed_console()

# Exit code when a transaction was broadcast but never observed.
EXIT_OUTCOME_UNKNOWN = 3


@dataclass
class CLIState:
    config_dir: Path
    verbose: bool = False
    config_file: Path | None = None

    @property
    def config_manager(self) -> ConfigManager:
        return ConfigManager(config_dir=self.config_dir, override_config_path=self.config_file)

    @property
    def wallet_manager(self) -> WalletManager:
        return WalletManager(keys_dir=self.config_dir / "keys")


def styled_echo(message: str = "", *, nl: bool = True) -> None:
    """Print using the TokenForge themed console."""
    CLI_CONSOLE.print(message, end="" if not nl else "\n")


def _configure_logging(verbose: bool, log_dir: Path | None) -> None:
    root_logger = logging.getLogger()
    if verbose:
        if not root_logger.handlers:
            logging.basicConfig(level=logging.DEBUG, format="%(asctime)s %(levelname)s %(name)s: %(message)s")
        root_logger.setLevel(logging.DEBUG)
    else:
        if root_logger.handlers:
            root_logger.setLevel(logging.WARNING)
        else:
            logging.basicConfig(level=logging.WARNING, format="%(message)s")
    if verbose and log_dir is not None:
        log_dir.mkdir(parents=True, exist_ok=True)
        handler = logging.FileHandler(log_dir / "tokenforge.log", encoding="utf-8")
        handler.setLevel(logging.DEBUG)
        handler.setFormatter(logging.Formatter("%(asctime)s %(levelname)s %(name)s: %(message)s"))
        logging.getLogger().addHandler(handler)


def _fail(message: str, *, title: str | None = None, code: int = 1) -> typer.Exit:
    CLI_CONSOLE.print(create_semantic_panel(message, panel_type="error", title=title))
    return typer.Exit(code=code)


def _state(ctx: typer.Context) -> CLIState:
    state = ctx.find_root().obj
    if not isinstance(state, CLIState):  # pragma: no cover - callback always sets it
        state = CLIState(config_dir=DEFAULT_CONFIG_DIR)
    return state


def _settings(state: CLIState, network: str | None = None) -> LaunchSettings:
    try:
        return state.config_manager.settings(network=network)
    except ConfigurationError as exc:
        raise _fail(str(exc), title="Configuration") from exc


def _rpc_client(settings: LaunchSettings) -> SolanaRPCClient:
    return SolanaRPCClient(
        endpoint=settings.rpc_url,
        commitment=settings.commitment,
        confirm_timeout=settings.confirm_timeout,
    )


def _wallet_address(state: CLIState) -> str:
    status = state.wallet_manager.status()
    if not status.exists or not status.public_key:
        raise _fail("No wallet found. Run `tokenforge wallet create` to set one up.", title="Wallet")
    return status.public_key


def _parse_attributes(values: list[str]) -> list[dict[str, str]]:
    attributes = []
    for value in values:
        trait_type, sep, trait_value = value.partition("=")
        if not sep:
            raise ValidationError(f"Attribute '{value}' must look like TRAIT=VALUE.")
        attributes.append({"trait_type": trait_type, "value": trait_value})
    return attributes


@app.callback()
def root(
    ctx: typer.Context,
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Enable debug logging"),  # noqa: B008
    config_dir: Path = typer.Option(  # noqa: B008
        DEFAULT_CONFIG_DIR,
        "--config-dir",
        envvar="TOKENFORGE_HOME",
        help="Directory holding config.toml and the keystore",
    ),
    config: Path | None = typer.Option(None, "--config", help="Merge an extra TOML file over config.toml"),  # noqa: B008
) -> None:
    config_dir = config_dir.expanduser()
    _configure_logging(verbose, log_dir=config_dir / "logs")
    config_file = config.expanduser() if config is not None else None
    ctx.obj = CLIState(config_dir=config_dir, verbose=verbose, config_file=config_file)


@app.command()
def launch(
    ctx: typer.Context,
    name: str = typer.Option(..., "--name", prompt="Token name", help="2-20 characters"),  # noqa: B008
    symbol: str = typer.Option(..., "--symbol", prompt="Token symbol", help="2-8 characters"),  # noqa: B008
    decimals: int = typer.Option(9, "--decimals", help="Decimal places (0-18)"),  # noqa: B008
    supply: str = typer.Option(..., "--supply", prompt="Initial supply", help="Whole-token supply minted to you"),  # noqa: B008
    image_url: str | None = typer.Option(None, "--image-url", help="http(s) URL of the token image"),  # noqa: B008
    description: str = typer.Option("", "--description", help="Empty, or 8-50 characters"),  # noqa: B008
    attribute: list[str] | None = typer.Option(  # noqa: B008
        None, "--attribute", help="Metadata attribute as TRAIT=VALUE; repeatable"
    ),
    revoke_mint: bool = typer.Option(False, "--revoke-mint", help="Permanently give up mint authority"),  # noqa: B008
    revoke_freeze: bool = typer.Option(False, "--revoke-freeze", help="Permanently give up freeze authority"),  # noqa: B008
    network: str | None = typer.Option(None, "--network", help="Override the configured network"),  # noqa: B008
    json_output: bool = typer.Option(False, "--json", help="Print the result as JSON"),  # noqa: B008
    passphrase: str = typer.Option(  # noqa: B008
        ...,
        "--passphrase",
        prompt="Wallet passphrase",
        hide_input=True,
        envvar="TOKENFORGE_PASSPHRASE",
    ),
) -> None:
    """Create a Token-2022 mint with metadata and mint the initial supply."""
    state = _state(ctx)
    settings = _settings(state, network)
    try:
        request = TokenLaunchRequest.create(
            name=name,
            symbol=symbol,
            decimals=decimals,
            initial_supply=supply,
            image_url=image_url,
            description=description,
            revoke_mint=revoke_mint,
            revoke_freeze=revoke_freeze,
            attributes=_parse_attributes(attribute or []),
        )
    except ValidationError as exc:
        raise _fail(str(exc), title="Invalid request") from exc

    manager = state.wallet_manager
    try:
        manager.unlock_wallet(passphrase)
    except WalletError as exc:
        raise _fail(str(exc), title="Wallet") from exc

    log_buffer = LogBuffer()

    def _render(entry: LogEntry) -> None:
        CLI_CONSOLE.print(format_log_entry(entry))

    if not json_output:
        log_buffer.subscribe(_render)

    try:
        result = launch_token_sync(
            request,
            settings=settings,
            wallet=KeystoreSigner(manager),
            log_buffer=log_buffer,
        )
    except LaunchFailedError as exc:
        if exc.outcome_unknown:
            CLI_CONSOLE.print(create_semantic_panel(str(exc.cause), panel_type="warning", title="Outcome unknown"))
            raise typer.Exit(code=EXIT_OUTCOME_UNKNOWN) from exc
        raise _fail(str(exc.cause), title=f"Launch failed during {exc.stage}") from exc
    finally:
        log_buffer.unsubscribe(_render)
        manager.lock_wallet()

    if json_output:
        typer.echo(json.dumps(result.as_dict(), indent=2))
        return
    CLI_CONSOLE.print(create_result_panel(result.as_dict(), network=settings.network))


@network_app.command("show")
def network_show(ctx: typer.Context) -> None:
    """Show the selected network and its RPC endpoint."""
    manager = _state(ctx).config_manager
    try:
        config = manager.load()
        endpoint = manager.endpoint(config)
    except ConfigurationError as exc:
        raise _fail(str(exc), title="Configuration") from exc
    styled_echo(f"[tokenforge.key]Network[/]: {config.network}")
    styled_echo(f"[tokenforge.key]RPC URL[/]: {endpoint}")


@network_app.command("use")
def network_use(ctx: typer.Context, name: str = typer.Argument(..., help=f"One of: {', '.join(NETWORK_NAMES)}")) -> None:  # noqa: B008
    """Select the network used by later commands."""
    manager = _state(ctx).config_manager
    try:
        current = manager.load()
        endpoint = manager.endpoint(current.model_copy(update={"network": normalize_network(name)}))
        config = manager.set_network(name)
    except ConfigurationError as exc:
        raise _fail(str(exc), title="Configuration") from exc
    styled_echo(f"✅ Network set to {config.network} ({endpoint})")


@network_app.command("custom")
def network_custom(ctx: typer.Context, url: str = typer.Argument(..., help="RPC URL")) -> None:  # noqa: B008
    """Store a custom RPC URL and switch to the `custom` network."""
    if not url.strip().startswith(("http://", "https://")):
        raise _fail("Custom RPC URL must start with http:// or https://", title="Configuration")
    manager = _state(ctx).config_manager
    try:
        config = manager.set_custom_rpc_url(url)
    except ConfigurationError as exc:
        raise _fail(str(exc), title="Configuration") from exc
    styled_echo(f"✅ Network set to {config.network} ({config.custom_rpc_url})")


@wallet_app.command("create")
def wallet_create(
    ctx: typer.Context,
    passphrase: str = typer.Option(  # noqa: B008
        ...,
        "--passphrase",
        prompt="New wallet passphrase",
        hide_input=True,
        confirmation_prompt=True,
    ),
    force: bool = typer.Option(False, "--force", help="Overwrite an existing wallet"),  # noqa: B008
) -> None:
    """Generate a new keystore wallet and print its recovery phrase."""
    manager = _state(ctx).wallet_manager
    try:
        status, mnemonic = manager.create_wallet(passphrase, force=force)
    except WalletError as exc:
        raise _fail(str(exc), title="Wallet") from exc
    styled_echo(f"✅ Wallet created: {status.public_key}")
    styled_echo("\n📝 Recovery phrase (write it down, keep it offline):")
    styled_echo(mnemonic)


@wallet_app.command("restore")
def wallet_restore(
    ctx: typer.Context,
    secret: str = typer.Option(  # noqa: B008
        ...,
        "--secret",
        prompt="Recovery phrase or JSON/base58 secret",
        hide_input=True,
    ),
    passphrase: str = typer.Option(  # noqa: B008
        ...,
        "--passphrase",
        prompt="New wallet passphrase",
        hide_input=True,
        confirmation_prompt=True,
    ),
    overwrite: bool = typer.Option(False, "--overwrite", help="Replace an existing wallet"),  # noqa: B008
) -> None:
    """Restore a wallet from a recovery phrase or secret key."""
    manager = _state(ctx).wallet_manager
    try:
        status, _ = manager.restore_wallet(secret, passphrase, overwrite=overwrite)
    except WalletError as exc:
        raise _fail(str(exc), title="Wallet") from exc
    styled_echo(f"✅ Wallet restored: {status.public_key}")


@wallet_app.command("status")
def wallet_status(ctx: typer.Context) -> None:
    """Show whether a wallet exists and its address."""
    status = _state(ctx).wallet_manager.status()
    if not status.exists:
        styled_echo("No wallet found. Run `tokenforge wallet create` to set one up.")
        return
    styled_echo(f"[tokenforge.key]Address[/]: {status.public_key} ({status.masked_address})")
    styled_echo(f"[tokenforge.key]Keystore[/]: {status.wallet_path}")


@wallet_app.command("address")
def wallet_address(ctx: typer.Context) -> None:
    """Print the wallet address."""
    typer.echo(_wallet_address(_state(ctx)))


@wallet_app.command("export")
def wallet_export(
    ctx: typer.Context,
    passphrase: str = typer.Option(..., "--passphrase", prompt="Wallet passphrase", hide_input=True),  # noqa: B008
    output: Path | None = typer.Option(None, "--output", help="Write the secret key to this file"),  # noqa: B008
) -> None:
    """Export the secret key as a JSON byte array."""
    try:
        secret = _state(ctx).wallet_manager.export_wallet(passphrase)
    except WalletError as exc:
        raise _fail(str(exc), title="Wallet") from exc
    if output is None:
        typer.echo(secret)
        return
    target = output.expanduser()
    target.write_text(secret)
    target.chmod(0o600)
    styled_echo(f"✅ Secret key written to {target}")


@wallet_app.command("phrase")
def wallet_phrase(
    ctx: typer.Context,
    passphrase: str = typer.Option(..., "--passphrase", prompt="Wallet passphrase", hide_input=True),  # noqa: B008
) -> None:
    """Show the recovery phrase stored with the wallet."""
    try:
        mnemonic = _state(ctx).wallet_manager.get_mnemonic(passphrase)
    except WalletError as exc:
        raise _fail(str(exc), title="Wallet") from exc
    typer.echo(mnemonic)


@app.command()
def airdrop(
    ctx: typer.Context,
    amount: float = typer.Option(1.0, "--amount", help="SOL to request"),  # noqa: B008
) -> None:
    """Request a faucet airdrop to the wallet (devnet, testnet and localhost)."""
    state = _state(ctx)
    settings = _settings(state)
    if not supports_airdrop(settings.network):
        raise _fail(f"Airdrop is not available on {settings.network}.", title="Airdrop")
    if amount <= 0:
        raise _fail("Airdrop amount must be greater than zero.", title="Airdrop")
    address = _wallet_address(state)
    rpc = _rpc_client(settings)

    async def _airdrop() -> str:
        signature = await rpc.request_airdrop(address, amount)
        await rpc.confirm_transaction(signature)
        return signature

    with CLI_CONSOLE.status(f"Requesting {amount:.3f} SOL airdrop…", spinner="dots"):
        try:
            signature = asyncio.run(_airdrop())
        except SolanaRPCError as exc:
            raise _fail(f"{exc}. Try again later or with a smaller amount.", title="Airdrop failed") from exc
    styled_echo(f"✅ Airdrop confirmed (sig: {signature})")


@app.command()
def balance(ctx: typer.Context) -> None:
    """Show the wallet's SOL balance on the selected network."""
    state = _state(ctx)
    settings = _settings(state)
    address = _wallet_address(state)
    try:
        amount = asyncio.run(_rpc_client(settings).get_balance(address))
    except SolanaRPCError as exc:
        raise _fail(f"Unable to fetch wallet balance: {exc}", title="Balance") from exc
    styled_echo(f"💰 Balance: {amount:.9f} SOL ({settings.network})")


@app.command()
def version() -> None:
    """Show CLI version."""
    try:
        pkg_version = metadata.version("tokenforge")
    except metadata.PackageNotFoundError:
        pkg_version = __version__
    styled_echo(f"TokenForge CLI version {pkg_version}")


def main() -> None:
    """Console script entrypoint."""
    app(prog_name="tokenforge")


__all__ = ["app", "main"]

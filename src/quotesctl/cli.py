"""quotesctl CLI."""

from __future__ import annotations

import asyncio
import logging
import signal
import sys

import click

from quotesctl import __version__
from quotesctl.config_loader import AppConfig, load_config_with_overrides
from quotesctl.constants import APP_NAME, HISTORY_CHUNK_SIZE
from quotesctl.data.line_source import LineSource
from quotesctl.delivery.base import DeliveryChannel, DeliveryError
from quotesctl.delivery.console import ConsoleChannel
from quotesctl.delivery.kafka import KafkaDeliveryChannel
from quotesctl.delivery.loops import run_bulk_generate, run_interactive, run_paced
from quotesctl.generator.history import build_history_messages
from quotesctl.generator.instruments import select_instruments
from quotesctl.generator.producer import PayloadProducer
from quotesctl.generator.rng import RandomStream
from quotesctl.time.calendar import format_epoch, parse_loose, parse_strict

logger = logging.getLogger(__name__)


def _setup_logging(config: AppConfig) -> None:
    logging.basicConfig(
        level=config.environment.log_level.value,
        format=config.environment.log_format,
        stream=sys.stderr,
    )


def _install_signal_handlers(cancel: asyncio.Event) -> None:
    """Route Ctrl+C / SIGTERM to the cancellation event of the running loop."""
    loop = asyncio.get_running_loop()
    for sig in (signal.SIGINT, signal.SIGTERM):
        try:
            loop.add_signal_handler(sig, cancel.set)
        except NotImplementedError:
            # Windows event loops have no signal handler support
            logger.debug(f"Cannot install handler for {sig.name}")


def _make_channel(config: AppConfig, dry_run: bool = False) -> DeliveryChannel | None:
    """Console channel for dry runs, Kafka when credentials are set, else None."""
    if dry_run:
        return ConsoleChannel()
    if not config.can_send:
        return None
    return KafkaDeliveryChannel(config.kafka)


def _print_header(config: AppConfig, dry_run: bool, *details: str) -> None:
    click.echo("Quote Generator")
    if dry_run:
        click.echo("  output  : stdout (dry run)")
    else:
        click.echo(f"  broker  : {config.kafka.broker}")
        click.echo(f"  topic   : {config.kafka.topic}")
        if config.kafka.tls:
            click.echo("  tls     : on (insecure)")
    for line in details:
        click.echo(f"  {line}")


_CONNECTION_OPTIONS = (
    click.option(
        "--config",
        type=click.Path(exists=True, dir_okay=False),
        default=None,
        help="Path to YAML configuration file (default: environment variables)",
    ),
    click.option("--broker", default=None, help="Kafka broker address [KAFKA_BROKER]"),
    click.option("--user", default=None, help="SASL PLAIN username [KAFKA_USER]"),
    click.option("--password", default=None, help="SASL PLAIN password [KAFKA_PASSWORD]"),
    click.option(
        "--tls/--no-tls", default=None, help="Use TLS, certificate verification disabled"
    ),
    click.option("--topic", default=None, help="Kafka topic name [TOPIC]"),
    click.option("--log-level", default=None, help="Logging level (DEBUG, INFO, ...)"),
)


def connection_options(func):
    """Options shared by every command that talks to Kafka."""
    for option in reversed(_CONNECTION_OPTIONS):
        func = option(func)
    return func


def _load(config, broker, user, password, tls, topic, log_level, **generator) -> AppConfig:
    try:
        cfg = load_config_with_overrides(
            config,
            kafka={
                "broker": broker,
                "user": user,
                "password": password,
                "tls": tls,
                "topic": topic,
            },
            generator=generator,
            log_level=log_level,
        )
    except (FileNotFoundError, ValueError) as e:
        raise click.ClickException(str(e)) from e
    _setup_logging(cfg)
    return cfg


@click.group()
@click.version_option(__version__, prog_name=APP_NAME)
def cli():
    """Quotes pipeline tooling: synthetic quote generation and delivery."""
    pass


@cli.command()
@connection_options
@click.option("--symbol", default=None, help="Symbol filter, e.g. EURUSD (default: all)")
@click.option(
    "--rate", type=float, default=None, help="Messages per second, 0 = interactive / unpaced"
)
@click.option("--history", is_flag=True, help="Add ts_ms timestamp to generated quotes")
@click.option(
    "--file",
    "file_path",
    type=click.Path(dir_okay=False),
    default=None,
    help="CSV/space-separated file to send",
)
@click.option("--generate", is_flag=True, help="Generate a historical range to stdout (+ Kafka)")
@click.option("--from", "from_", default=None, help="Start time (UTC), e.g. '2026-02-15 20:00:00'")
@click.option("--to", "to", default=None, help="End time (UTC, exclusive)")
@click.option("--interval", type=int, default=None, help="Tick interval in ms for --generate")
@click.option("--price", type=float, default=None, help="Starting bid price, 0 = symbol default")
@click.option("--seed", type=int, default=None, help="Random seed, 0 = current time")
@click.option("--dry-run", is_flag=True, help="Print payloads to stdout instead of sending")
def gen(
    config,
    broker,
    user,
    password,
    tls,
    topic,
    log_level,
    symbol,
    rate,
    history,
    file_path,
    generate,
    from_,
    to,
    interval,
    price,
    seed,
    dry_run,
):
    """Quote generator: interactive, auto (--rate), generate (--generate), file (--file)."""
    cfg = _load(
        config,
        broker,
        user,
        password,
        tls,
        topic,
        log_level,
        symbol=symbol,
        rate=rate,
        history=True if history else None,
        interval_ms=interval,
        price=price,
        seed=seed,
    )

    try:
        if generate:
            asyncio.run(_run_generate(cfg, from_, to))
        else:
            asyncio.run(_run_stream(cfg, file_path, dry_run))
    except DeliveryError as e:
        logger.error(f"Delivery failed: {e}")
        raise click.ClickException(str(e)) from e
    except (ValueError, OSError) as e:
        raise click.ClickException(str(e)) from e


async def _run_generate(cfg: AppConfig, from_: str | None, to: str | None) -> None:
    gen_cfg = cfg.generator
    if not from_ or not to:
        raise ValueError("--from and --to are required with --generate")
    from_sec = parse_loose(from_)
    to_sec = parse_loose(to)
    if to_sec <= from_sec:
        raise ValueError("--to must be after --from")

    rng = RandomStream(gen_cfg.seed)
    instruments = select_instruments(gen_cfg.symbol, gen_cfg.price)
    channel = _make_channel(cfg)

    cancel = asyncio.Event()
    _install_signal_handlers(cancel)

    kwargs = dict(
        rate=gen_cfg.rate,
        cancel=cancel,
        chunk_size=min(gen_cfg.chunk_size, cfg.kafka.max_batch_size),
        progress_every=gen_cfg.bulk_progress_every,
    )
    if channel is None:
        logger.info("No Kafka credentials configured, writing to stdout only")
        await run_bulk_generate(instruments, rng, from_sec, to_sec, gen_cfg.interval_ms, **kwargs)
        return

    async with channel:
        await run_bulk_generate(
            instruments, rng, from_sec, to_sec, gen_cfg.interval_ms, channel=channel, **kwargs
        )


async def _run_stream(cfg: AppConfig, file_path: str | None, dry_run: bool) -> None:
    gen_cfg = cfg.generator

    if file_path:
        producer = PayloadProducer.from_file(LineSource.open(file_path))
        details = [f"mode    : file ({file_path}, {producer.total} lines)"]
    else:
        instruments = select_instruments(gen_cfg.symbol, gen_cfg.price)
        rng = RandomStream(gen_cfg.seed)
        producer = PayloadProducer.random_walk(instruments, rng, with_timestamp=gen_cfg.history)
        details = []
        if gen_cfg.symbol:
            details.append(f"symbol  : {gen_cfg.symbol}")
        if gen_cfg.history:
            details.append("format  : {symbol, bid, ask, ts_ms}")
        else:
            details.append("format  : {symbol, bid, ask}")

    channel = _make_channel(cfg, dry_run=dry_run)
    if channel is None:
        mode = "file" if file_path else "streaming"
        raise ValueError(f"--password is required for {mode} mode (or use --dry-run)")

    if gen_cfg.rate > 0:
        details.append(f"rate    : {gen_cfg.rate:.1f} msg/s")
    _print_header(cfg, dry_run, *details)
    click.echo()

    cancel = asyncio.Event()
    _install_signal_handlers(cancel)

    async with channel:
        if gen_cfg.rate > 0:
            await run_paced(
                channel,
                producer,
                gen_cfg.rate,
                cancel=cancel,
                progress_every=gen_cfg.paced_progress_every,
            )
        else:
            if file_path:
                click.echo("Commands: Enter - send next | N - send N lines | q - quit")
            else:
                click.echo("Commands: Enter - send 1 random quote | N - send N quotes | q - quit")
            click.echo()
            await run_interactive(
                channel,
                producer,
                cancel=cancel,
                chunk_size=min(gen_cfg.chunk_size, cfg.kafka.max_batch_size),
            )


@cli.command()
@connection_options
@click.option("--from", "from_", required=True, help="Start of range (UTC), 'YYYY-MM-DD HH:MM:SS'")
@click.option("--to", "to", required=True, help="End of range (UTC), 'YYYY-MM-DD HH:MM:SS'")
@click.option("--symbol", required=True, help="Symbol, e.g. EURUSD")
@click.option("--dry-run", is_flag=True, help="Print payloads to stdout instead of sending")
def history(config, broker, user, password, tls, topic, log_level, from_, to, symbol, dry_run):
    """Send one deterministic tick per minute for a symbol/range."""
    cfg = _load(config, broker, user, password, tls, topic, log_level)

    try:
        asyncio.run(_run_history(cfg, from_, to, symbol, dry_run))
    except DeliveryError as e:
        logger.error(f"Delivery failed: {e}")
        raise click.ClickException(str(e)) from e
    except (ValueError, OSError) as e:
        raise click.ClickException(str(e)) from e


async def _run_history(cfg: AppConfig, from_: str, to: str, symbol: str, dry_run: bool) -> None:
    from_sec = parse_strict(from_)
    to_sec = parse_strict(to)
    messages = build_history_messages(symbol, from_sec, to_sec)

    channel = _make_channel(cfg, dry_run=dry_run)
    if channel is None:
        raise ValueError("--password is required for history reload (or use --dry-run)")

    click.echo(
        f"Generating {len(messages)} ticks ({symbol}, "
        f"{format_epoch(from_sec)} -> {format_epoch(to_sec)})...",
        err=dry_run,
    )
    async with channel:
        batches = await channel.send_chunked(messages, HISTORY_CHUNK_SIZE)
    click.echo(
        f"Sent {len(messages)} ticks in {batches} batches to topic '{cfg.kafka.topic}'",
        err=dry_run,
    )


if __name__ == "__main__":
    cli()

# Alias for __main__.py
main = cli

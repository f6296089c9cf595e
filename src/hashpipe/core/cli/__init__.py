"""hashpipe CLI: pipe stdin/stdout to and from an IRC connection."""

import click
from loguru import logger

from hashpipe import __version__
from hashpipe.core.exceptions import ConfigurationError
from hashpipe.core.utils.logging import level_for_verbosity, setup_logging


@click.command(context_settings={"help_option_names": ["-h", "--help"]})
@click.version_option(version=__version__, package_name="hashpipe")
@click.option("-s", "--server", help="IRC server to connect to.")
@click.option("-p", "--port", type=click.IntRange(1, 65535), help="Port (default 6667, or 6697 with --tls).")
@click.option("--tls", is_flag=True, help="Connect with TLS.")
@click.option("-n", "--nick", help="Nickname to use (default: hashpipe).")
@click.option("-c", "--channels", help="Channel(s) to speak in, comma separated (default: #hashpipe).")
@click.option("-o", "--raw-out", is_flag=True, help="Echo everything from the IRC server directly.")
@click.option("-i", "--raw-in", is_flag=True, help="Interpret stdin as raw IRC commands.")
@click.option("-q", "--quiet", is_flag=True, help="Do not print channel messages.")
@click.option("-v", "--verbose", count=True, help="Log more (-v info, -vv debug).")
@click.option("--quit-message", help="Text sent with QUIT on exit.")
@click.option(
    "--config",
    "config_file",
    type=click.Path(exists=True, dir_okay=False),
    help="YAML or JSON config file.",
)
@click.option("--log-file", type=click.Path(dir_okay=False), help="Also write logs to this file.")
def main(
    server: str | None,
    port: int | None,
    tls: bool,
    nick: str | None,
    channels: str | None,
    raw_out: bool,
    raw_in: bool,
    quiet: bool,
    verbose: int,
    quit_message: str | None,
    config_file: str | None,
    log_file: str | None,
) -> None:
    """Hashpipe: pipes data to and from an IRC connection."""
    from hashpipe.core.cli.common import load_settings, run_pipe

    try:
        settings = load_settings(
            config_file,
            {
                "irc.server": server,
                "irc.port": port,
                "irc.tls": tls,
                "irc.nick": nick,
                "irc.channels": channels,
                "irc.quit_message": quit_message,
                "pipe.raw_out": raw_out,
                "pipe.raw_in": raw_in,
                "pipe.quiet": quiet,
                "logging.verbosity": verbose or None,
                "logging.file": log_file,
            },
        )
    except ConfigurationError as exc:
        raise click.UsageError(str(exc)) from exc

    setup_logging(level=level_for_verbosity(settings.logging.verbosity), log_file=settings.logging.file)
    logger.debug(f"Settings: {settings.model_dump()}")

    status = run_pipe(settings)
    logger.info(f"Exiting with status {int(status)}")
    raise SystemExit(int(status))

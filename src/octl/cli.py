import logging
import os

import click
from rich.logging import RichHandler

from .constants import (
    CONFIG_FILE_NAME,
    DEFAULT_APP_REPOS,
    DEFAULT_DROPLET_NAME,
    DEFAULT_ENVIRONMENT,
    DEFAULT_REGION,
)
from .core import SetupWizard
from .errors import SetupError
from .services.config_loader import ConfigLoader
from .services.settings import SETTINGS_DIR_ENV, resolve_settings_dir
from .steps import STEPS, parse_step_selection


def _resolve_option(cli_value, config, key, default=None):
    if cli_value is not None:
        return cli_value
    if key in config:
        return config[key]
    return default


logging.basicConfig(
    level="INFO",
    format="%(message)s",
    datefmt="[%X]",
    handlers=[RichHandler(rich_tracebacks=True, show_level=False, show_path=False)],
)


@click.command()
@click.option(
    "--config",
    required=False,
    type=click.Path(),
    help=f"Path to a YAML configuration file. Defaults to {CONFIG_FILE_NAME} if present.",
)
@click.option(
    "--settings-dir",
    required=False,
    type=click.Path(file_okay=False),
    envvar=SETTINGS_DIR_ENV,
    help="Directory for octl.json and octl-reference.md (default: ~/.octl on Linux, ~/Documents/octl elsewhere).",
)
@click.option(
    "--steps",
    required=False,
    help="Comma-separated step ids or numbers to run without the selection menu, "
    f"e.g. 'resend,dns'. Available: {', '.join(step.id for step in STEPS)}.",
)
@click.option("--verbose", is_flag=True, default=None, help="Enable verbose logging")
@click.option("--log-file", type=click.Path(), help="Path to log file")
def main(config, settings_dir, steps, verbose, log_file):
    """Provision the OlympusOSS production infrastructure step by step."""
    logger = logging.getLogger("octl")

    try:
        config_loader = ConfigLoader()
        resolved_config = config
        if resolved_config is None:
            default_config_path = os.path.join(os.getcwd(), CONFIG_FILE_NAME)
            if os.path.exists(default_config_path):
                resolved_config = default_config_path

        config_values = config_loader.load(resolved_config)
    except SetupError as exc:
        raise click.ClickException(str(exc)) from exc

    settings_dir = _resolve_option(settings_dir, config_values, "settings_dir")
    steps = _resolve_option(steps, config_values, "steps")
    verbose = bool(_resolve_option(verbose, config_values, "verbose", default=False))
    log_file = _resolve_option(log_file, config_values, "log_file")
    environment = str(_resolve_option(None, config_values, "environment", default=DEFAULT_ENVIRONMENT))
    droplet_name = str(_resolve_option(None, config_values, "droplet_name", default=DEFAULT_DROPLET_NAME))
    default_region = str(_resolve_option(None, config_values, "default_region", default=DEFAULT_REGION))
    app_repos = _resolve_option(None, config_values, "app_repos", default=list(DEFAULT_APP_REPOS))

    step_ids = None
    if steps:
        try:
            step_ids = parse_step_selection(steps, STEPS)
        except click.BadParameter as exc:
            raise click.ClickException(f"Invalid --steps value: {exc.message}") from exc

    if verbose:
        logging.getLogger().setLevel(logging.DEBUG)
        logger.setLevel(logging.DEBUG)
    else:
        logger.setLevel(logging.INFO)

    if log_file:
        file_handler = logging.FileHandler(log_file)
        file_handler.setLevel(logging.DEBUG if verbose else logging.INFO)
        file_handler.setFormatter(logging.Formatter("%(asctime)s [%(levelname)s] %(message)s"))
        logger.addHandler(file_handler)

    wizard = SetupWizard(
        settings_dir=resolve_settings_dir(settings_dir),
        step_ids=step_ids,
        environment=environment,
        droplet_name=droplet_name,
        default_region=default_region,
        app_repos=app_repos,
    )

    raise SystemExit(wizard.run())


if __name__ == "__main__":
    main()

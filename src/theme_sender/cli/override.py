"""
theme-override: send one custom theme override, or a revert, and exit.

The override stays active on the running theme-sender until the next solar
event change or until a revert is sent.
"""

from __future__ import annotations

from typing import Optional

import typer

from ..adapters.mqtt import MqttPublisher
from ..infra.exceptions import ThemeSenderError
from ..infra.logging import configure_logging, get_logger
from ..infra.settings import load_settings

REVERT_PAYLOAD = b"revert"

app = typer.Typer(help="Send custom theme overrides to theme-sender", add_completion=False)


@app.command()
def send(
    theme: Optional[str] = typer.Argument(
        None, metavar="THEME", help='Custom theme string to send (e.g. "dark", "light", "high-contrast")'
    ),
    revert: bool = typer.Option(False, "--revert", "-r", help="Revert to automatic solar-based themes"),
    mqtt_host: Optional[str] = typer.Option(None, help="MQTT broker host [env: MQTT_HOST]"),
    mqtt_port: Optional[int] = typer.Option(None, help="MQTT broker port [env: MQTT_PORT]"),
    mqtt_username: Optional[str] = typer.Option(None, help="MQTT username [env: MQTT_USERNAME]"),
    mqtt_password: Optional[str] = typer.Option(None, help="MQTT password [env: MQTT_PASSWORD]"),
    mqtt_override_topic: Optional[str] = typer.Option(
        None, help="Override topic [env: MQTT_OVERRIDE_TOPIC]"
    ),
    mqtt_revert_topic: Optional[str] = typer.Option(None, help="Revert topic [env: MQTT_REVERT_TOPIC]"),
):
    """Publish THEME on the override topic, or a revert with --revert."""
    if revert and theme is not None:
        typer.echo("Error: THEME and --revert cannot be used together", err=True)
        raise typer.Exit(1)
    if not revert and theme is None:
        typer.echo("Error: Must specify either a THEME or --revert", err=True)
        raise typer.Exit(1)

    try:
        settings = load_settings(
            mqtt_host=mqtt_host,
            mqtt_port=mqtt_port,
            mqtt_username=mqtt_username,
            mqtt_password=mqtt_password,
            mqtt_override_topic=mqtt_override_topic,
            mqtt_revert_topic=mqtt_revert_topic,
        )
    except ThemeSenderError as exc:
        typer.echo(f"Error: {exc}", err=True)
        raise typer.Exit(1)

    configure_logging(settings.log_level, settings.log_format)
    logger = get_logger("theme_sender.cli.override")

    if revert:
        topic, payload = settings.mqtt_revert_topic, REVERT_PAYLOAD
    else:
        topic, payload = settings.mqtt_override_topic, theme.encode("utf-8")

    try:
        publisher = MqttPublisher(
            settings.mqtt_host,
            settings.mqtt_port,
            client_id="theme-override-cli",
            username=settings.mqtt_username,
            password=settings.mqtt_password,
            max_attempts=1,
        )
        logger.info("override_sending", host=publisher.host, topic=topic, revert=revert)
        publisher.publish(topic, payload)
    except ThemeSenderError as exc:
        logger.error("override_send_failed", topic=topic, error=str(exc))
        typer.echo(f"Error: {exc}", err=True)
        raise typer.Exit(1)

    if revert:
        typer.echo(f"Revert message sent to {topic}")
    else:
        typer.echo(f"Custom theme '{theme}' sent to {topic}")
        typer.echo("")
        typer.echo("This theme will be active until the next solar event change.")
        typer.echo("To revert to automatic themes immediately, run:")
        typer.echo("  theme-override --revert")


def cli():
    """Entry point for theme-override."""
    app()


if __name__ == "__main__":
    cli()

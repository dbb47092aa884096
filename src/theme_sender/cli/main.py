"""
Main CLI application for theme-sender, built with Typer.

``theme-sender [OPTIONS]`` (or ``theme-sender run [OPTIONS]``) starts the
publishing daemon; ``theme-sender schedule`` prints the solar schedule for a
day. Every option falls back to its environment variable, then to the
built-in default.
"""

from __future__ import annotations

import json
from datetime import date, datetime
from typing import Optional

import typer

from ..infra.exceptions import ThemeSenderError
from ..infra.logging import configure_logging, get_logger
from ..infra.settings import Settings, load_settings
from ..service import ThemeSenderService

app = typer.Typer(help="Publish a solar-derived theme to MQTT", add_completion=False)


def _load(**overrides) -> Settings:
    try:
        settings = load_settings(**overrides)
    except ThemeSenderError as exc:
        configure_logging()
        get_logger("theme_sender.cli").error("configuration_invalid", error=str(exc))
        typer.echo(f"Error: {exc}", err=True)
        raise typer.Exit(1)
    configure_logging(settings.log_level, settings.log_format)
    return settings


def _run_daemon(**overrides) -> None:
    settings = _load(**overrides)
    logger = get_logger("theme_sender.cli")
    service = ThemeSenderService(settings)
    try:
        service.run()
    except ThemeSenderError as exc:
        logger.error("theme_sender_failed", error_type=type(exc).__name__, error=str(exc))
        typer.echo(f"Error: {exc}", err=True)
        raise typer.Exit(1)


MQTT_HOST = typer.Option(None, help="MQTT broker host [env: MQTT_HOST]")
MQTT_PORT = typer.Option(None, help="MQTT broker port [env: MQTT_PORT]")
MQTT_USERNAME = typer.Option(None, help="MQTT username [env: MQTT_USERNAME]")
MQTT_PASSWORD = typer.Option(None, help="MQTT password [env: MQTT_PASSWORD]")
MQTT_TOPIC = typer.Option(None, help="Theme topic [env: MQTT_TOPIC]")
MQTT_OVERRIDE_TOPIC = typer.Option(None, help="Override topic [env: MQTT_OVERRIDE_TOPIC]")
MQTT_REVERT_TOPIC = typer.Option(None, help="Revert topic [env: MQTT_REVERT_TOPIC]")
PUBLISH_INTERVAL_SECS = typer.Option(None, help="Seconds between publishes [env: PUBLISH_INTERVAL_SECS]")
PUBLISH_ON_OVERRIDE = typer.Option(
    None,
    "--publish-on-override/--no-publish-on-override",
    help="Publish immediately when an override arrives [env: PUBLISH_ON_OVERRIDE]",
)
LATITUDE = typer.Option(None, help="Fixed latitude, skips geolocation [env: LATITUDE]")
LONGITUDE = typer.Option(None, help="Fixed longitude, skips geolocation [env: LONGITUDE]")
TIMEZONE = typer.Option(None, help="IANA timezone for the local day [env: TZ_NAME]")
LOG_LEVEL = typer.Option(None, help="Log level [env: LOG_LEVEL]")


def _merged(ctx: typer.Context, **overrides) -> dict:
    """Subcommand flags win over flags given before the subcommand."""
    merged = dict(ctx.obj or {})
    merged.update({name: value for name, value in overrides.items() if value is not None})
    return merged


@app.callback(invoke_without_command=True)
def main(
    ctx: typer.Context,
    mqtt_host: Optional[str] = MQTT_HOST,
    mqtt_port: Optional[int] = MQTT_PORT,
    mqtt_username: Optional[str] = MQTT_USERNAME,
    mqtt_password: Optional[str] = MQTT_PASSWORD,
    mqtt_topic: Optional[str] = MQTT_TOPIC,
    mqtt_override_topic: Optional[str] = MQTT_OVERRIDE_TOPIC,
    mqtt_revert_topic: Optional[str] = MQTT_REVERT_TOPIC,
    publish_interval_secs: Optional[int] = PUBLISH_INTERVAL_SECS,
    publish_on_override: Optional[bool] = PUBLISH_ON_OVERRIDE,
    latitude: Optional[float] = LATITUDE,
    longitude: Optional[float] = LONGITUDE,
    timezone: Optional[str] = TIMEZONE,
    log_level: Optional[str] = LOG_LEVEL,
):
    """theme-sender - solar themes over MQTT.

    Without a subcommand the daemon runs with the flags given here.
    """
    ctx.obj = {
        name: value
        for name, value in {
            "mqtt_host": mqtt_host,
            "mqtt_port": mqtt_port,
            "mqtt_username": mqtt_username,
            "mqtt_password": mqtt_password,
            "mqtt_topic": mqtt_topic,
            "mqtt_override_topic": mqtt_override_topic,
            "mqtt_revert_topic": mqtt_revert_topic,
            "publish_interval_secs": publish_interval_secs,
            "publish_on_override": publish_on_override,
            "latitude": latitude,
            "longitude": longitude,
            "timezone": timezone,
            "log_level": log_level,
        }.items()
        if value is not None
    }
    if ctx.invoked_subcommand is None:
        _run_daemon(**ctx.obj)


@app.command("run")
def run(
    ctx: typer.Context,
    mqtt_host: Optional[str] = MQTT_HOST,
    mqtt_port: Optional[int] = MQTT_PORT,
    mqtt_username: Optional[str] = MQTT_USERNAME,
    mqtt_password: Optional[str] = MQTT_PASSWORD,
    mqtt_topic: Optional[str] = MQTT_TOPIC,
    mqtt_override_topic: Optional[str] = MQTT_OVERRIDE_TOPIC,
    mqtt_revert_topic: Optional[str] = MQTT_REVERT_TOPIC,
    publish_interval_secs: Optional[int] = PUBLISH_INTERVAL_SECS,
    publish_on_override: Optional[bool] = PUBLISH_ON_OVERRIDE,
    latitude: Optional[float] = LATITUDE,
    longitude: Optional[float] = LONGITUDE,
    timezone: Optional[str] = TIMEZONE,
    log_level: Optional[str] = LOG_LEVEL,
):
    """Start the theme publisher and override listener."""
    _run_daemon(
        **_merged(
            ctx,
            mqtt_host=mqtt_host,
            mqtt_port=mqtt_port,
            mqtt_username=mqtt_username,
            mqtt_password=mqtt_password,
            mqtt_topic=mqtt_topic,
            mqtt_override_topic=mqtt_override_topic,
            mqtt_revert_topic=mqtt_revert_topic,
            publish_interval_secs=publish_interval_secs,
            publish_on_override=publish_on_override,
            latitude=latitude,
            longitude=longitude,
            timezone=timezone,
            log_level=log_level,
        )
    )


def _format_json_output(result: object) -> str:
    return json.dumps(result, indent=2)


@app.command("schedule")
def schedule(
    ctx: typer.Context,
    day: Optional[str] = typer.Option(None, "--date", help="Local date (YYYY-MM-DD), defaults to today"),
    latitude: Optional[float] = typer.Option(None, help="Fixed latitude [env: LATITUDE]"),
    longitude: Optional[float] = typer.Option(None, help="Fixed longitude [env: LONGITUDE]"),
    timezone: Optional[str] = typer.Option(None, help="IANA timezone [env: TZ_NAME]"),
    json_output: bool = typer.Option(False, "--json", help="Output in JSON format"),
):
    """Print the solar theme schedule for a day."""
    location_flags = {
        name: value
        for name, value in _merged(ctx, latitude=latitude, longitude=longitude, timezone=timezone).items()
        if name in ("latitude", "longitude", "timezone")
    }
    settings = _load(**location_flags)
    service = ThemeSenderService(settings)
    try:
        solar_schedule = service.build_schedule()
        target = date.fromisoformat(day) if day else datetime.now(solar_schedule.tz).date()
        events = solar_schedule.compute(target)
    except (ValueError, ThemeSenderError) as exc:
        get_logger("theme_sender.cli").error("schedule_failed", error_type=type(exc).__name__, error=str(exc))
        typer.echo(f"Error: {exc}", err=True)
        raise typer.Exit(1)

    if json_output:
        typer.echo(
            _format_json_output(
                [
                    {
                        "instant": event.instant.isoformat(),
                        "theme": event.theme.display_name,
                        "label": event.label,
                    }
                    for event in events
                ]
            )
        )
        return

    typer.echo(f"Schedule for {target.isoformat()}:")
    for event in events:
        typer.echo(
            f"  {event.instant.strftime('%H:%M:%S')}  {event.theme.display_name:<17} "
            f"{event.label:<12} {event.theme.description}"
        )


def cli():
    """Entry point for the CLI."""
    app()


if __name__ == "__main__":
    cli()

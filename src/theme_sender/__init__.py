"""theme-sender: publish a solar-derived theme to MQTT with operator overrides."""

__version__ = "0.1.0"

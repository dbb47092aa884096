"""Adapters for external collaborators: MQTT broker and geolocation service."""

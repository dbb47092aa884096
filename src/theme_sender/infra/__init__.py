"""Infrastructure: settings, logging and the error taxonomy."""

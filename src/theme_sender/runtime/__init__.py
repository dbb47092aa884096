"""Runtime core: schedule, channel, resolver, loop and listener."""

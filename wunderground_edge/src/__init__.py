"""
Edge daemon package for the Weather Underground PWS uploader.

Reads weather readings for a single personal weather station from the local
variable registry, filters out stale and already-sent values, and uploads the
rest to Weather Underground in one debounced HTTP request per refresh tick.

CHANGELOG:
- 2026-10-19: Initial creation

TODO:
- None
"""

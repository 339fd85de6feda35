"""
obs-deck — Stream-deck style remote control for OBS Studio.

Modules:
  core/     — OBS session ownership: transport wrapper, connection manager, errors
  actions/  — Scene / stream / source dispatchers and the button action router
  schema/   — Action definitions and front-end message envelope
  config/   — Settings, env loading, YAML config
"""

__version__ = "1.0.0"

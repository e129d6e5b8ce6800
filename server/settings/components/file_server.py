"""File server settings."""

from server.settings.components import config

# Path of the TOML credential policy, loaded once per process
AUTH_CONFIG_PATH = config('AUTH_CONFIG_PATH', default='auth.toml')

# File server host and port
FILE_SERVER_HOST = config('FILE_SERVER_HOST', default='127.0.0.1')
FILE_SERVER_PORT = config('FILE_SERVER_PORT', cast=int, default=3000)

# Seconds between two reaper sweeps
REAPER_INTERVAL = config('REAPER_INTERVAL', cast=int, default=10)

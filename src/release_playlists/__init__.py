"""
Release Playlists - monthly release wiki to Spotify playlist sync

Reads the community release wiki for the current (and, early in the month,
the previous) month and files every linked release into a month playlist,
a year playlist and a rolling "Current Month's Releases" playlist.
"""

# Note: modules are imported directly to keep startup cheap for cron runs
# Use: from release_playlists import config
# Use: from release_playlists.orchestrator import run_once

__version__ = "1.0.0"

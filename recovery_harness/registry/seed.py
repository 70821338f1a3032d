"""
Seed data for the app registry.

The six client applications exercised against the sound, network and
storage drivers.
"""

from recovery_harness.registry.models import DriverClass

DEFAULT_APPS: list[tuple[str, DriverClass]] = [
    ("mp3_player", DriverClass.SOUND),
    ("audio_recorder", DriverClass.SOUND),
    ("network_file_transfer", DriverClass.NETWORK),
    ("network_analyzer", DriverClass.NETWORK),
    ("compiler", DriverClass.STORAGE),
    ("database", DriverClass.STORAGE),
]

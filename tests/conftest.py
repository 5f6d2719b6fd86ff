# tests/conftest.py
# Copyright (c) 2024 Brad Edwards
# Licensed under the MIT License - see LICENSE file for details

from typing import Any, Dict, List

import pytest

from clusterstate.core.blueprint import Blueprint


class Recorder:
    """Callable listener that keeps everything it receives."""

    def __init__(self) -> None:
        self.received: List[Any] = []

    def __call__(self, item: Any) -> None:
        self.received.append(item)

    @property
    def names(self) -> List[str]:
        return [item.name for item in self.received]


@pytest.fixture
def recorder() -> Recorder:
    return Recorder()


@pytest.fixture
def recorder_factory():
    """Returns a factory for independent recorders."""
    return Recorder


@pytest.fixture
def player_blueprint_data() -> Dict[str, Any]:
    """The plain-data music player blueprint."""
    return {
        "version": "1.0",
        "appName": "Test Player",
        "clusters": {
            "Player": {
                "stateGroups": {
                    "playback": {"initial": "stopped", "states": ["stopped", "playing", "paused", "loading"]},
                    "track": {"initial": "noTrack", "states": ["noTrack", "trackLoaded", "trackError"]},
                },
                "transitions": {
                    "on": {
                        "TRACK_LOAD_STARTED": {"target": {"playback": "loading"}},
                        "TRACK_LOAD_SUCCEEDED": {"target": {"playback": "paused", "track": "trackLoaded"}},
                        "TRACK_LOAD_FAILED": {"target": {"playback": "stopped", "track": "trackError"}},
                        "PLAYBACK_STARTED": {"target": {"playback": "playing"}},
                        "PLAYBACK_PAUSED": {"target": {"playback": "paused"}},
                    }
                },
            }
        },
    }


@pytest.fixture
def player_blueprint(player_blueprint_data) -> Blueprint:
    return Blueprint.from_dict(player_blueprint_data)


@pytest.fixture
def multi_cluster_blueprint() -> Blueprint:
    """Two clusters that both react to RESET, plus one that reacts alone to MUTE."""
    return Blueprint.from_dict(
        {
            "version": "2",
            "appName": "Multi",
            "clusters": {
                "Player": {
                    "stateGroups": {
                        "playback": {"initial": "playing", "states": ["stopped", "playing"]},
                        "track": {"initial": "trackLoaded", "states": ["noTrack", "trackLoaded"]},
                    },
                    "transitions": {"on": {"RESET": {"target": {"playback": "stopped"}}}},
                },
                "Volume": {
                    "stateGroups": {
                        "level": {"initial": "high", "states": ["muted", "low", "high"]},
                    },
                    "transitions": {
                        "on": {
                            "RESET": {"target": {"level": "low"}},
                            "MUTE": {"target": {"level": "muted"}},
                        }
                    },
                },
            },
        }
    )

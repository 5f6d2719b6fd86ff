# clusterstate/examples/music_player.py
# Copyright (c) 2024 Brad Edwards
# Licensed under the MIT License - see LICENSE file for details
"""
A small music player driven by the engine.

The blueprint declares one ``Player`` cluster. :class:`AudioService` stands in
for real playback hardware and knows nothing about the engine; the handlers
returned by :func:`create_handlers` adapt commands to service calls and turn
the outcome into domain events or feedback.

Run the demo scenario with ``python -m clusterstate.examples.music_player``.
"""

from __future__ import annotations

import asyncio
import json
import logging
from typing import Dict, Optional

from clusterstate.core.blueprint import Blueprint
from clusterstate.core.events import Command, DomainEvent, Feedback, FeedbackLevel
from clusterstate.core.state import CoreState
from clusterstate.interfaces.types import CommandHandler, GetState, HandlerResult
from clusterstate.runtime.engine import Engine

logger = logging.getLogger(__name__)

INVALID_OPERATION = "INVALID_OPERATION"

MUSIC_PLAYER_BLUEPRINT = Blueprint.from_dict(
    {
        "version": "1.0",
        "appName": "Music Player",
        "clusters": {
            "Player": {
                "description": "Core player",
                "stateGroups": {
                    "playback": {
                        "initial": "stopped",
                        "states": ["stopped", "playing", "paused", "loading"],
                        "description": "What the player is doing right now",
                    },
                    "track": {
                        "initial": "noTrack",
                        "states": ["noTrack", "trackLoaded", "trackError"],
                        "description": "Whether a usable track is loaded",
                    },
                },
                "transitions": {
                    "on": {
                        "TRACK_LOAD_STARTED": {"target": {"playback": "loading"}},
                        "TRACK_LOAD_SUCCEEDED": {"target": {"playback": "paused", "track": "trackLoaded"}},
                        "TRACK_LOAD_FAILED": {"target": {"playback": "stopped", "track": "trackError"}},
                        "PLAYBACK_STARTED": {"target": {"playback": "playing"}},
                        "PLAYBACK_PAUSED": {"target": {"playback": "paused"}},
                        "PLAYBACK_STOPPED": {"target": {"playback": "stopped", "track": "noTrack"}},
                    }
                },
            }
        },
    }
)


class AudioLoadError(Exception):
    pass


class AudioService:
    """Simulated audio backend. ``latency`` is the seconds a load takes."""

    def __init__(self, latency: float = 1.0) -> None:
        self.latency = latency

    async def load(self, url: str) -> None:
        logger.info("Loading track from %s", url)
        await asyncio.sleep(self.latency)
        if url and "good-song" in url:
            logger.info("Track loaded")
            return
        logger.info("Track failed to load")
        raise AudioLoadError("Invalid or unreachable track URL")

    async def play(self) -> None:
        logger.info("Playback started")

    async def pause(self) -> None:
        logger.info("Playback paused")

    async def stop(self) -> None:
        logger.info("Playback stopped")


def _rejected(command: str, required: str, current: str) -> Feedback:
    return Feedback.warning(
        INVALID_OPERATION,
        f"Cannot {command}. Required state is '{required}', but current is '{current}'.",
        {"command": command, "required": required, "current": current},
    )


def create_handlers(audio: Optional[AudioService] = None) -> Dict[str, CommandHandler]:
    """Build the command handler map around an :class:`AudioService`."""
    audio = audio or AudioService()

    async def load_track(get_state: GetState, command: Command) -> HandlerResult:
        url = (command.payload or {}).get("trackUrl")
        started = DomainEvent("TRACK_LOAD_STARTED", {"url": url})
        try:
            await audio.load(url)
        except AudioLoadError as e:
            return [started, DomainEvent("TRACK_LOAD_FAILED", {"error": str(e)})]
        return [started, DomainEvent("TRACK_LOAD_SUCCEEDED", {"url": url})]

    async def play(get_state: GetState, command: Command) -> HandlerResult:
        player = get_state()["Player"]
        if player["playback"] != "paused" or player["track"] != "trackLoaded":
            return _rejected("PLAY", "paused/trackLoaded", f"{player['playback']}/{player['track']}")
        await audio.play()
        return DomainEvent("PLAYBACK_STARTED")

    async def pause(get_state: GetState, command: Command) -> HandlerResult:
        playback = get_state().value("Player", "playback")
        if playback != "playing":
            return _rejected("PAUSE", "playing", playback)
        await audio.pause()
        return DomainEvent("PLAYBACK_PAUSED")

    async def stop(get_state: GetState, command: Command) -> HandlerResult:
        track = get_state().value("Player", "track")
        if track != "trackLoaded":
            return _rejected("STOP", "trackLoaded", track)
        await audio.stop()
        return DomainEvent("PLAYBACK_STOPPED")

    return {"LOAD_TRACK": load_track, "PLAY": play, "PAUSE": pause, "STOP": stop}


def create_engine(audio: Optional[AudioService] = None) -> Engine:
    return Engine(MUSIC_PLAYER_BLUEPRINT, create_handlers(audio))


async def main(latency: float = 1.0) -> CoreState:
    """Run the demo scenario, logging every state change and feedback item."""
    engine = create_engine(AudioService(latency))

    def log_state(state: CoreState) -> None:
        logger.info("STATE UPDATE\n%s", json.dumps(state.to_dict(), indent=2))

    def log_feedback(feedback: Feedback) -> None:
        log = logger.error if feedback.level is FeedbackLevel.ERROR else logger.warning
        log("FEEDBACK [%s]: %s", feedback.name, feedback.message)

    engine.subscribe_to_state(log_state)
    engine.subscribe_to_feedback("*", log_feedback)
    logger.info("Initial state\n%s", json.dumps(engine.get_state().to_dict(), indent=2))

    scenario = [
        (Command("PLAY"), "Attempting to PLAY while stopped (should be rejected)"),
        (Command("LOAD_TRACK", {"trackUrl": "path/to/good-song.mp3"}), "Loading a valid track"),
        (Command("PLAY"), "Playing the loaded track"),
        (Command("PLAY"), "Attempting to PLAY while already playing (should be rejected)"),
        (Command("PAUSE"), "Pausing the track"),
        (Command("LOAD_TRACK", {"trackUrl": "path/to/bad-song.mp3"}), "Loading an invalid track"),
    ]
    for command, description in scenario:
        logger.info("> %s: %s %s", description, command.name, json.dumps(command.payload or {}))
        await engine.dispatch(command)

    await engine.drain()
    return engine.get_state()


if __name__ == "__main__":
    logging.basicConfig(level=logging.INFO, format="%(levelname)-7s %(name)s | %(message)s")
    asyncio.run(main())

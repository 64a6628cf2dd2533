from __future__ import annotations

import logging
from typing import Optional

from sequencing.clock import SR, Clock
from sequencing.timemap import TimeMap
from .config import EngineConfig
from .store import GeneratorManager

logger = logging.getLogger(__name__)


class SynthesisContext:
    """
    One song's worth of automation state: the tempo/meter map, the clock
    reading it, and the generator manager evaluating against that clock.
    Pass it (or its parts) explicitly; there is no process-wide instance.
    """

    def __init__(self, time_map: Optional[TimeMap] = None, sample_rate: int = SR):
        self.time_map = time_map if time_map is not None else TimeMap()
        self.clock = Clock(self.time_map, sample_rate)
        self.generators = GeneratorManager(self.clock)

    @classmethod
    def from_config(cls, config: EngineConfig) -> "SynthesisContext":
        time_map = TimeMap(
            ticks_per_beat=config.ticks_per_beat,
            default_us_per_beat=config.default_us_per_beat,
            default_meter=(config.default_beats_per_bar, config.default_subdivision),
        )
        logger.debug("new context from %r", config)
        return cls(time_map, config.sample_rate)

    @property
    def config(self) -> EngineConfig:
        beats_per_bar, subdivision = self.time_map.default_meter
        return EngineConfig(
            sample_rate=self.clock.sr,
            ticks_per_beat=self.time_map.ticks_per_beat,
            default_us_per_beat=self.time_map.default_us_per_beat,
            default_beats_per_bar=beats_per_bar,
            default_subdivision=subdivision,
        )

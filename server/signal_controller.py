"""
Signal phase controller
Runs exactly one strategy at a time: a fixed phase cycle or the adaptive pair scheduler
"""
import logging
from dataclasses import dataclass, field
from typing import Any, Dict, Mapping, Optional, Union
from models import (
    Direction, Pair, LightColor, ControlMode, AdaptivePhase,
    SignalSettings, DebugSummary
)

logger = logging.getLogger(__name__)


# Fixed-mode all-red hold between the two greens
ALL_RED_HOLD_MS = 3000.0

# Adaptive-mode score comparison interval while green
ADAPTIVE_EVALUATION_MS = 3000.0

# Adaptive-mode all-red clearance before the other pair goes green
ADAPTIVE_CLEARANCE_MS = 1500.0

# Fixed-mode phase table: (served pair or None for all red, color)
FIXED_PHASES = (
    (Pair.NORTH_SOUTH, LightColor.GREEN),
    (Pair.NORTH_SOUTH, LightColor.YELLOW),
    (None, LightColor.RED),
    (Pair.WEST_EAST, LightColor.GREEN),
    (Pair.WEST_EAST, LightColor.YELLOW),
    (None, LightColor.RED),
)


def all_red() -> Dict[Direction, LightColor]:
    return {direction: LightColor.RED for direction in Direction}


@dataclass
class FixedPhaseState:
    phaseIndex: int = 0
    phaseTimerMs: float = 0.0


@dataclass
class AdaptiveState:
    activePair: Optional[Pair] = None
    phase: AdaptivePhase = AdaptivePhase.RED
    phaseTimerMs: float = 0.0
    priorityScores: Dict[Pair, float] = field(
        default_factory=lambda: {Pair.WEST_EAST: 0.0, Pair.NORTH_SOUTH: 0.0}
    )
    lastSwitchMs: float = 0.0


class FixedStrategy:
    """
    Round-robin timer over six phases
    NS green → NS yellow → all red → WE green → WE yellow → all red → ...
    """
    kind = ControlMode.FIXED

    def __init__(self):
        self.state = FixedPhaseState()
        logger.info("Initializing fixed mode")


    def phase_duration(self, settings: SignalSettings) -> float:
        _, color = FIXED_PHASES[self.state.phaseIndex]
        if color == LightColor.GREEN:
            return settings.greenDurationMs
        if color == LightColor.YELLOW:
            return settings.yellowDurationMs
        return ALL_RED_HOLD_MS


    def advance(self, elapsed_ms: float, settings: SignalSettings, clock_ms: float):
        self.state.phaseTimerMs += elapsed_ms
        if self.state.phaseTimerMs >= self.phase_duration(settings):
            self.state.phaseIndex = (self.state.phaseIndex + 1) % len(FIXED_PHASES)
            self.state.phaseTimerMs = 0.0
            logger.info(f"Fixed mode: advanced to phase {self.state.phaseIndex}")


    def light_colors(self) -> Dict[Direction, LightColor]:
        lights = all_red()
        pair, color = FIXED_PHASES[self.state.phaseIndex]
        if pair is not None:
            for direction in pair.directions:
                lights[direction] = color
        return lights


    def summary(self, clock_ms: float) -> DebugSummary:
        return DebugSummary(
            mode=self.kind,
            phase=str(self.state.phaseIndex),
            timerMs=self.state.phaseTimerMs,
            clockMs=clock_ms
        )


class AdaptiveStrategy:
    """
    Two-pair priority scheduler

    Unarmed (all red) → Green(pair) → Yellow(pair) → AllRed(pair) → Green(other pair) → ...
    While green, the waiting pair's score is compared to the served pair's
    score every evaluation interval; the waiting pair takes over only when
    its score is strictly greater.
    """
    kind = ControlMode.ADAPTIVE

    def __init__(self):
        self.state = AdaptiveState()
        logger.info("Initializing adaptive mode, all lights red until first demand")


    def advance(self, elapsed_ms: float, settings: SignalSettings, clock_ms: float):
        state = self.state
        state.phaseTimerMs += elapsed_ms

        if state.activePair is None:
            self._try_arm()
            return

        if state.phase == AdaptivePhase.GREEN:
            if state.phaseTimerMs >= ADAPTIVE_EVALUATION_MS:
                serving = state.priorityScores.get(state.activePair, 0.0)
                waiting = state.priorityScores.get(state.activePair.other, 0.0)
                logger.info(
                    f"GREEN {state.activePair.value}: {serving:.1f} vs "
                    f"RED {state.activePair.other.value}: {waiting:.1f}"
                )
                if waiting > serving:
                    self._enter(AdaptivePhase.YELLOW)
                else:
                    state.phaseTimerMs = 0.0

        elif state.phase == AdaptivePhase.YELLOW:
            if state.phaseTimerMs >= settings.yellowDurationMs:
                self._enter(AdaptivePhase.RED)
                state.lastSwitchMs = clock_ms

        elif state.phase == AdaptivePhase.RED:
            if state.phaseTimerMs >= ADAPTIVE_CLEARANCE_MS:
                next_pair = state.activePair.other
                logger.info(f"Switching: {state.activePair.value} → {next_pair.value}")
                self._serve(next_pair)


    def _try_arm(self):
        # West-East is checked first and wins a same-tick tie
        we_score = self.state.priorityScores.get(Pair.WEST_EAST, 0.0)
        ns_score = self.state.priorityScores.get(Pair.NORTH_SOUTH, 0.0)

        if we_score > 0:
            self._serve(Pair.WEST_EAST)
        elif ns_score > 0:
            self._serve(Pair.NORTH_SOUTH)
        else:
            return
        logger.info(f"Adaptive mode armed: {self.state.activePair.value} gets the first green")


    def _serve(self, pair: Pair):
        self.state.activePair = pair
        self._enter(AdaptivePhase.GREEN)


    def _enter(self, phase: AdaptivePhase):
        self.state.phase = phase
        self.state.phaseTimerMs = 0.0
        logger.info(f"Adaptive mode: {self.state.activePair.value} lights turned {phase.value.upper()}")


    def light_colors(self) -> Dict[Direction, LightColor]:
        lights = all_red()
        if self.state.activePair is not None:
            color = LightColor(self.state.phase.value)
            for direction in self.state.activePair.directions:
                lights[direction] = color
        return lights


    def summary(self, clock_ms: float) -> DebugSummary:
        return DebugSummary(
            mode=self.kind,
            phase=self.state.phase.value,
            timerMs=self.state.phaseTimerMs,
            clockMs=clock_ms,
            pair=self.state.activePair,
            scores=dict(self.state.priorityScores)
        )


Strategy = Union[FixedStrategy, AdaptiveStrategy]


def _demand_value(record: Any, name: str) -> float:
    """Numeric field of a demand record, zero when missing or malformed"""
    if record is None:
        return 0.0
    if isinstance(record, Mapping):
        value = record.get(name, 0)
    else:
        value = getattr(record, name, 0)
    try:
        value = float(value or 0)
    except (TypeError, ValueError):
        return 0.0
    return value if value > 0 else 0.0


class SignalController:
    """
    Owns the four light colors and the single active strategy

    The controller advances a simulation clock from the elapsed time passed
    to update(); no wall-clock time is read.
    """

    def __init__(self, mode: ControlMode = ControlMode.FIXED, settings: Optional[SignalSettings] = None):
        self.settings = settings or SignalSettings()
        self.clock_ms = 0.0
        self.strategy: Strategy = self._build_strategy(mode)


    @staticmethod
    def _build_strategy(mode: ControlMode) -> Strategy:
        if ControlMode(mode) == ControlMode.ADAPTIVE:
            return AdaptiveStrategy()
        return FixedStrategy()


    @property
    def mode(self) -> ControlMode:
        return self.strategy.kind


    @property
    def fixed_state(self) -> Optional[FixedPhaseState]:
        return self.strategy.state if isinstance(self.strategy, FixedStrategy) else None


    @property
    def adaptive_state(self) -> Optional[AdaptiveState]:
        return self.strategy.state if isinstance(self.strategy, AdaptiveStrategy) else None


    def configure(self, mode: ControlMode, settings: Optional[SignalSettings] = None):
        """(Re)initialize the strategy for a mode"""
        if settings is not None:
            self.settings = settings
        self.strategy = self._build_strategy(mode)


    def set_mode(self, mode: ControlMode):
        """Switch strategy; staying in the same mode keeps its state"""
        if ControlMode(mode) != self.mode:
            self.strategy = self._build_strategy(mode)


    def update_settings(self, settings: SignalSettings):
        self.settings = settings


    def reset(self):
        self.strategy = self._build_strategy(self.mode)
        logger.info(f"{self.mode.value} mode reset")


    def update(
        self,
        elapsed_ms: float,
        mode: Optional[ControlMode] = None,
        settings: Optional[SignalSettings] = None
    ):
        """Advance the clock and the active strategy by one tick"""
        if mode is not None:
            self.set_mode(mode)
        if settings is not None:
            self.update_settings(settings)

        elapsed_ms = max(0.0, elapsed_ms)
        self.clock_ms += elapsed_ms
        self.strategy.advance(elapsed_ms, self.settings, self.clock_ms)


    def calculate_pair_score(self, pair: Pair, demand: Optional[Mapping[Direction, Any]]) -> float:
        """
        PRIORITY SCORE FORMULA:
        score = Σ (carsWaiting × waitTimeMs / 1000 + totalArrivals) over both directions
        """
        if not isinstance(demand, Mapping):
            return 0.0

        total = 0.0
        for direction in pair.directions:
            record = demand.get(direction)
            cars = _demand_value(record, "carsWaiting")
            wait_s = _demand_value(record, "waitTimeMs") / 1000.0
            arrivals = _demand_value(record, "totalArrivals")
            total += cars * wait_s + arrivals
        return total


    def update_adaptive_logic(self, demand: Optional[Mapping[Direction, Any]]):
        """Fold the current demand records into the adaptive priority scores"""
        state = self.adaptive_state
        if state is None:
            return

        if demand is None:
            logger.warning("update_adaptive_logic: no demand data, using zero demand")

        state.priorityScores = {
            pair: self.calculate_pair_score(pair, demand) for pair in Pair
        }
        logger.debug(
            f"Scores: WE={state.priorityScores[Pair.WEST_EAST]:.1f}, "
            f"NS={state.priorityScores[Pair.NORTH_SOUTH]:.1f}"
        )


    # ---- Query surface ---- #

    def current_light_colors(self) -> Dict[Direction, LightColor]:
        return self.strategy.light_colors()


    def debug_summary(self) -> DebugSummary:
        return self.strategy.summary(self.clock_ms)

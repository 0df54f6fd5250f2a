"""Default configuration parameters for the sequence execution engine."""

from dataclasses import dataclass


@dataclass(frozen=True)
class PlaybackParams:
    """Playback speed and command queue parameters."""
    min_speed: float = 0.25                         # Slowest allowed multiplier
    max_speed: float = 2.0                          # Fastest allowed multiplier
    default_speed: float = 1.0                      # Used when start omits speed
    inbox_size: int = 64                            # Max queued control commands


@dataclass(frozen=True)
class AckParams:
    """Device acknowledgment wait parameters."""
    safety_margin_ms: float = 2000.0                # Added to the motion estimate
    min_timeout_ms: float = 500.0                   # Floor for any action wait
    max_timeout_ms: float = 30000.0                 # Hard cap for any action wait
    timeout_policy: str = "soft"                    # soft: timeout counts as success; fail: aborts
    fail_on_device_error: bool = True               # Abort when the device reports a failed action


@dataclass(frozen=True)
class ServoMotionParams:
    """Servo duration estimate parameters."""
    full_sweep_ms: float = 1000.0                   # 180 degree travel at 100% speed
    sweep_degrees: float = 180.0
    default_speed_pct: float = 100.0                # Firmware speed is 1-100%


@dataclass(frozen=True)
class StepperMotionParams:
    """Stepper duration estimate parameters (steps, steps/s, steps/s^2)."""
    default_speed: float = 1000.0
    default_acceleration: float = 500.0


@dataclass(frozen=True)
class PinMotionParams:
    """Digital I/O settle time."""
    settle_ms: float = 50.0


@dataclass(frozen=True)
class LoggingParams:
    """Logging output parameters."""
    level: str = "INFO"
    format_json: bool = False
    include_caller: bool = False


@dataclass(frozen=True)
class DefaultConfig:
    """Complete default configuration."""
    playback: PlaybackParams
    ack: AckParams
    servo: ServoMotionParams
    stepper: StepperMotionParams
    pin: PinMotionParams
    logging: LoggingParams


def get_default_config() -> DefaultConfig:
    """Get the default configuration instance."""
    return DefaultConfig(
        playback=PlaybackParams(),
        ack=AckParams(),
        servo=ServoMotionParams(),
        stepper=StepperMotionParams(),
        pin=PinMotionParams(),
        logging=LoggingParams(),
    )


def build_engine_config(config: dict) -> DefaultConfig:
    """
    Build typed configuration from a merged config dictionary.

    Sections or keys missing from the dictionary keep their defaults;
    unknown keys raise TypeError from the dataclass constructor.
    """
    return DefaultConfig(
        playback=PlaybackParams(**config.get("playback", {})),
        ack=AckParams(**config.get("ack", {})),
        servo=ServoMotionParams(**config.get("servo", {})),
        stepper=StepperMotionParams(**config.get("stepper", {})),
        pin=PinMotionParams(**config.get("pin", {})),
        logging=LoggingParams(**config.get("logging", {})),
    )

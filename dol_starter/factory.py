from dataclasses import dataclass
from typing import Optional

from .plc.controller import MotorController
from .settings import StarterConfig
from .simulation.clock import Clock, AsyncioClock
from .simulation.driver import SimulationDriver


@dataclass
class StarterSession:
    """One starter session: the controller plus the driver feeding it."""
    config: StarterConfig
    clock: Clock
    controller: MotorController
    driver: SimulationDriver

    def start(self):
        self.driver.start()

    def shutdown(self):
        self.driver.shutdown()


def build_session(config: Optional[StarterConfig] = None, clock: Optional[Clock] = None) -> StarterSession:
    """
    Build a starter session.

    CRITICAL: This function ONLY assembles components.
    The driver is not started here (call session.start() inside the event loop).
    """
    config = config or StarterConfig()
    clock = clock or AsyncioClock()

    controller = MotorController(
        clock,
        rated_rpm=config.rated_rpm,
        system_voltage=config.system_voltage,
        log_size=config.transition_log_size,
    )
    driver = SimulationDriver(controller, clock, config)

    return StarterSession(config=config, clock=clock, controller=controller, driver=driver)

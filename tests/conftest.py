import pytest

from amp_monitor.protocol import Command
from tests.simulator import (
    SimulatedAmplifier,
    alarms_payload,
    gain_mute_payload,
    standby_payload,
)


@pytest.fixture
def amplifier():
    """Simulated amplifier with no canned responses."""
    sim = SimulatedAmplifier().start()
    yield sim
    sim.close()


@pytest.fixture
def full_amplifier():
    """Simulated amplifier answering all three read commands for 4 channels."""
    sim = SimulatedAmplifier({
        Command.STANDBY: standby_payload(2),
        Command.READGM: gain_mute_payload([
            (0.0, -3.5, 0, 0),
            (1.0, -6.25, 0, 1),
            (0.0, 0.0, 1, 0),
            (-2.0, 4.0, 0, 0),
        ]),
        Command.READALLALARMS2: alarms_payload(0, [0b10000011, 0, 0b00001000, 0]),
    }).start()
    yield sim
    sim.close()

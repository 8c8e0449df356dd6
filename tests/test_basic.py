from meshgate import (
    Acknowledgement,
    ActuatorNode,
    Config,
    FrameCodec,
    Gateway,
    RelayCommand,
    SensorNode,
    TelemetryReport,
    __version__,
)


def test_version():
    assert __version__ == "1.0.0"


def test_import():
    assert Gateway is not None
    assert ActuatorNode is not None
    assert SensorNode is not None
    assert FrameCodec is not None
    assert TelemetryReport is not None
    assert RelayCommand is not None
    assert Acknowledgement is not None
    assert Config is not None

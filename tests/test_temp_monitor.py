import pytest

from codesage.temp_monitor import (
    TemperatureMonitor,
    TemperatureUnavailable,
    parse_sensors_output,
)

SAMPLE = """coretemp-isa-0000
Adapter: ISA adapter
CPU:          +45.0°C  (high = +80.0°C, crit = +100.0°C)

amdgpu-pci-0100
GPU: +52.0°C
"""


def _static(chips):
    return lambda: chips


def _sequence(*temps):
    readings = list(temps)

    def sensors():
        value = readings.pop(0) if len(readings) > 1 else readings[0]
        return {"chip": {"CPU": f"+{value}.0°C"}}

    return sensors


def _unavailable():
    raise TemperatureUnavailable("no sensors")


def test_parse_sensors_output():
    chips = parse_sensors_output(SAMPLE)
    assert set(chips) == {"coretemp-isa-0000", "amdgpu-pci-0100"}
    assert chips["coretemp-isa-0000"]["CPU"] == "+45.0°C  (high = +80.0°C, crit = +100.0°C)"
    assert chips["coretemp-isa-0000"]["Adapter"] == "ISA adapter"
    assert chips["amdgpu-pci-0100"]["GPU"] == "+52.0°C"


def test_gpu_preferred_over_cpu():
    monitor = TemperatureMonitor(80, 65, False, lambda: parse_sensors_output(SAMPLE))
    assert monitor.get_temperature() == (52, "gpu")


def test_cpu_used_without_gpu():
    monitor = TemperatureMonitor(80, 65, False, _static({"c": {"CPU": "+45.0°C"}}))
    assert monitor.get_temperature() == (45, "cpu")


def test_zero_gpu_reading_falls_back_to_cpu():
    chips = {"g": {"GPU": "+0.0°C"}, "c": {"CPU": "+45.9°C"}}
    monitor = TemperatureMonitor(80, 65, False, _static(chips))
    assert monitor.get_temperature() == (45, "cpu")


def test_no_sensors_found_raises():
    monitor = TemperatureMonitor(80, 65, False, _static({"c": {"fan1": "1200 RPM"}}))
    assert monitor.use_fallback is False
    with pytest.raises(TemperatureUnavailable):
        monitor.get_temperature()


def test_unavailable_sensors_enable_fallback():
    monitor = TemperatureMonitor(80, 65, False, _unavailable)
    assert monitor.use_fallback is True
    with pytest.raises(TemperatureUnavailable):
        monitor.get_temperature()


def test_remote_host_enables_fallback():
    monitor = TemperatureMonitor(80, 65, True, _static({"c": {"CPU": "+45.0°C"}}))
    assert monitor.use_fallback is True


def test_cool_down_fallback_sleeps_sixty_seconds():
    sleeps = []
    monitor = TemperatureMonitor(80, 65, True, _static({}), sleeps.append)
    monitor.cool_down()
    assert sleeps == [60]


def test_cool_down_between_safe_and_critical_waits_short():
    sleeps = []
    monitor = TemperatureMonitor(80, 65, False, _sequence(70, 70, 80, 60), sleeps.append)
    monitor.cool_down()
    assert sleeps == [2, 2]


def test_cool_down_above_critical_waits_longer():
    sleeps = []
    monitor = TemperatureMonitor(80, 65, False, _sequence(81, 81, 60), sleeps.append)
    monitor.cool_down()
    assert sleeps == [21]


def test_cool_down_returns_immediately_when_safe():
    sleeps = []
    monitor = TemperatureMonitor(80, 65, False, _sequence(40), sleeps.append)
    monitor.cool_down()
    assert sleeps == []
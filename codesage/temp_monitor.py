"""Hardware temperature monitoring used to pace heavy model work."""

from __future__ import annotations

import subprocess
import time
from datetime import datetime
from typing import Callable, Mapping

from termcolor import colored

Chips = Mapping[str, Mapping[str, str]]


class TemperatureUnavailable(Exception):
    """Raised when no temperature reading can be obtained."""


def parse_sensors_output(text: str) -> dict[str, dict[str, str]]:
    """Parse the output of the ``sensors`` command into chip -> entry -> value."""
    chips: dict[str, dict[str, str]] = {}
    chip: str | None = None
    for line in text.splitlines():
        if not line.strip():
            chip = None
            continue
        if ":" not in line:
            chip = line.strip()
            chips[chip] = {}
        elif chip is not None:
            key, _, value = line.partition(":")
            chips[chip][key.strip()] = value.strip()
    return chips


def read_sensors() -> dict[str, dict[str, str]]:
    """Run ``sensors`` and return its parsed readings."""
    try:
        result = subprocess.run(["sensors"], capture_output=True, text=True, check=False)
    except OSError as exc:
        raise TemperatureUnavailable(f"lm_sensors not available: {exc}") from exc
    if result.returncode != 0:
        raise TemperatureUnavailable("lm_sensors not available")
    return parse_sensors_output(result.stdout)


def _reading(value: str) -> int:
    tokens = value.replace("°C", "").split()
    if not tokens:
        return 0
    try:
        return int(float(tokens[0]))
    except ValueError:
        print(f"Error parsing temperature reading: {value!r}")
        return 0


class TemperatureMonitor:
    """Reads GPU/CPU temperature and waits for the hardware to cool down."""

    def __init__(
        self,
        critical_temp: int = 80,
        safe_temp: int = 65,
        is_not_local: bool = False,
        sensors: Callable[[], Chips] = read_sensors,
        sleep: Callable[[float], None] = time.sleep,
    ) -> None:
        print(colored("ℹ️  Temperature monitoring initialized", "yellow"))
        self.critical_temp = critical_temp
        self.safe_temp = safe_temp
        self.use_fallback = False
        self._sensors = sensors
        self._sleep = sleep
        try:
            sensors()
        except TemperatureUnavailable:
            print(colored("⚠️ lm_sensors not available - using time-based cooldown fallback", "yellow"))
            print(colored(
                "To enable sensor based monitoring please install lm_sensors", "blue"
            ))
            self.use_fallback = True
        if is_not_local:
            print(colored("⚠️ Not using local GPU/CPU - using time-based cooldown fallback", "yellow"))
            self.use_fallback = True

    def get_temperature(self) -> tuple[int, str]:
        """Return (degrees, source), preferring a GPU reading over a CPU one."""
        if self.use_fallback:
            raise TemperatureUnavailable("lm_sensors not available")
        chips = self._sensors()
        for key, source in (("GPU", "gpu"), ("CPU", "cpu")):
            for entries in chips.values():
                value = entries.get(key)
                if value is None:
                    continue
                temperature = _reading(value)
                if temperature != 0:
                    return temperature, source
        raise TemperatureUnavailable("no temperature sensors found")

    def _colour(self, temperature: int) -> str:
        text = f"{temperature:.1f}°C"
        if temperature >= self.critical_temp:
            return colored(text, "red")
        if temperature >= self.safe_temp:
            return colored(text, "yellow")
        return colored(text, "green")

    def cool_down(self) -> None:
        """Block until the temperature falls below the safe level."""
        start = time.monotonic()
        while True:
            try:
                temperature, source = self.get_temperature()
            except TemperatureUnavailable:
                print(colored(
                    "⚠️ Temperature monitoring unavailable - defaulting to 60s cooldown",
                    "yellow",
                ))
                self._sleep(60)
                return

            elapsed = round(time.monotonic() - start)
            print(
                f"\r🌡 [{datetime.now():%H:%M:%S}] Current {source.upper()} Temp: "
                f"{self._colour(temperature)} (Cooling since {elapsed}s)",
                end="",
                flush=True,
            )

            if temperature < self.safe_temp:
                print("\n✅ Temperature normalized")
                return

            wait = 2
            if temperature > self.critical_temp:
                wait = 5 + (temperature - self.safe_temp)
            self._sleep(wait)
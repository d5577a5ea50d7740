"""
UCI options: the engine's named configuration values.

UCI engines advertise their options in reply to "uci" and the GUI changes
them with "setoption name <name> value <value>". Option names are
case-insensitive and may contain spaces ("Move Overhead").

Only the options the time planner reads are defined:
    Move Overhead — ms subtracted per move for GUI/network latency
    nodestime     — nodes per ms for node-time emulation (0 = real clock)
    Ponder        — the GUI may let us think on the opponent's time
"""

from dataclasses import dataclass, field

from engine.constants import (
    MOVE_OVERHEAD_DEFAULT,
    MOVE_OVERHEAD_RANGE,
    NODESTIME_DEFAULT,
    NODESTIME_RANGE,
)


@dataclass
class Option:
    """
    A single UCI option.

    Attributes:
        name:    Display name, as sent in the "option name" line.
        kind:    UCI option type: "spin" (integer in [min, max]) or "check" (bool).
        default: Value before any setoption.
        min:     Lower bound for spin options.
        max:     Upper bound for spin options.
        value:   Current value.
    """

    name: str
    kind: str
    default: int | bool
    min: int = 0
    max: int = 0
    value: int | bool = field(init=False)

    def __post_init__(self) -> None:
        self.value = self.default

    def set(self, raw: str) -> None:
        """
        Parse a UCI value string and store it.

        Raises:
            ValueError: The string does not parse for this option type, or a
                        spin value lies outside [min, max]. The current value
                        is left untouched.
        """
        if self.kind == "check":
            lowered = raw.strip().lower()
            if lowered not in ("true", "false"):
                raise ValueError(f"{self.name}: expected true/false, got {raw!r}")
            self.value = lowered == "true"
            return

        number = int(raw)
        if not self.min <= number <= self.max:
            raise ValueError(f"{self.name}: {number} outside [{self.min}, {self.max}]")
        self.value = number

    def uci_line(self) -> str:
        if self.kind == "check":
            return f"option name {self.name} type check default {str(self.default).lower()}"
        return (
            f"option name {self.name} type spin default {self.default} "
            f"min {self.min} max {self.max}"
        )


class OptionsMap:
    """Case-insensitive lookup of the engine's UCI options."""

    def __init__(self) -> None:
        self._options: dict[str, Option] = {}
        self._add(Option("Move Overhead", "spin", MOVE_OVERHEAD_DEFAULT, *MOVE_OVERHEAD_RANGE))
        self._add(Option("nodestime", "spin", NODESTIME_DEFAULT, *NODESTIME_RANGE))
        self._add(Option("Ponder", "check", False))

    def _add(self, option: Option) -> None:
        self._options[option.name.lower()] = option

    def __getitem__(self, name: str) -> int | bool:
        return self._options[name.lower()].value

    def __contains__(self, name: str) -> bool:
        return name.lower() in self._options

    def set(self, name: str, raw: str) -> None:
        """
        Apply a setoption command.

        Raises:
            KeyError:   No option with that name.
            ValueError: Bad value for the option (see Option.set).
        """
        key = name.lower()
        if key not in self._options:
            raise KeyError(name)
        self._options[key].set(raw)

    def uci_lines(self) -> list[str]:
        """The "option ..." lines sent in reply to "uci", in registration order."""
        return [opt.uci_line() for opt in self._options.values()]

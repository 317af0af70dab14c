"""
smarthome_cli/power.py

Power switch pass-through commands and the power draw summary.
"""
import logging
from dataclasses import dataclass
from typing import List, Sequence

from smarthome_cli.client import ApiError, SmarthomeClient
from smarthome_cli.errors import InvalidSwitch, NotEnoughPowerDrawData, classify_api_error
from smarthome_cli.models import PowerDrawPoint, PowerSwitch

logger = logging.getLogger(__name__)


def list_switches(client: SmarthomeClient, show_all: bool = False) -> List[PowerSwitch]:
    try:
        return client.all_switches() if show_all else client.personal_switches()
    except ApiError as err:
        raise classify_api_error(err, "switches")


def set_power(client: SmarthomeClient, switch_id: str, power_on: bool) -> None:
    logger.debug("%s switch `%s`...", "Activating" if power_on else "Deactivating", switch_id)
    try:
        client.set_power(switch_id, power_on)
    except ApiError as err:
        raise classify_api_error(err, switch_id, on_unprocessable=InvalidSwitch)
    logger.info("Switch `%s` is now %s", switch_id, "on" if power_on else "off")


def set_power_many(client: SmarthomeClient, switch_ids: Sequence[str], power_on: bool) -> None:
    for switch_id in switch_ids:
        set_power(client, switch_id, power_on)


def toggle_power(client: SmarthomeClient, switch_ids: Sequence[str]) -> None:
    """Flip each switch based on its current state in the personal switch list."""
    switches = {switch.id: switch for switch in list_switches(client)}
    for switch_id in switch_ids:
        switch = switches.get(switch_id)
        if switch is None:
            raise InvalidSwitch(switch_id)
        set_power(client, switch_id, not switch.power_on)


def kwh_total(points: Sequence[PowerDrawPoint]) -> float:
    """
    Energy used by active switches over the measured period, in kWh.

    Each interval between two consecutive points is charged at the later
    point's active wattage; intervals are counted in whole minutes.
    """
    if not points:
        raise NotEnoughPowerDrawData()
    total = 0.0
    for prev, point in zip(points, points[1:]):
        minutes = (point.time - prev.time) // 60_000
        total += point.on.watts * (minutes / 60) / 1000
    return total


def peak_watts(points: Sequence[PowerDrawPoint]) -> int:
    if not points:
        raise NotEnoughPowerDrawData()
    return max(point.on.watts for point in points)


@dataclass(frozen=True)
class PowerDraw:
    switches: List[PowerSwitch]
    active_watts: int
    passive_watts: int
    kwh: float
    cost: float
    peak_watts: int

    @property
    def total_watts(self) -> int:
        return self.active_watts + self.passive_watts

    @property
    def active_percent(self) -> float:
        if not self.total_watts:
            return 0.0
        return self.active_watts / self.total_watts * 100

    @property
    def passive_percent(self) -> float:
        if not self.total_watts:
            return 0.0
        return self.passive_watts / self.total_watts * 100


def power_draw(client: SmarthomeClient, cost_per_kwh: float) -> PowerDraw:
    """Current draw of all switches plus usage metrics of the last 24 hours."""
    try:
        switches = client.all_switches()
        points = client.power_usage()
    except ApiError as err:
        raise classify_api_error(err, "power usage")
    logger.debug("Computing power draw from %d data point(s)", len(points))

    active = sum(switch.watts for switch in switches if switch.power_on)
    passive = sum(switch.watts for switch in switches if not switch.power_on)
    kwh = kwh_total(points)
    return PowerDraw(
        switches=switches,
        active_watts=active,
        passive_watts=passive,
        kwh=kwh,
        cost=kwh * cost_per_kwh,
        peak_watts=peak_watts(points),
    )

"""Barometer-based storm prediction rules.

Rules from https://www.worldstormcentral.co/ applied to the pressure change
(current minus past, hPa) over the last 3 and 12 hours:

Last 3 hours:
  - rise of 10 hPa -> Gale
  - rise of 6 hPa -> Strong Wind
  - rise of 1.1 to 2.7 hPa and pressure >= 1015 -> Poor Weather
  - drop of 1.1 to 2.7 hPa and pressure <= 1009 -> Rain and Wind
  - drop of 4 hPa and pressure <= 1009 -> Storm
  - drop of 4 hPa and 1009 < pressure <= 1023 -> Rain and Wind
  - drop of 6 hPa and pressure <= 1009 -> Storm with Strong Wind
  - drop of 7 hPa and pressure <= 990 and temperature >= 40 °C -> Firestorm
  - drop of 10 hPa and pressure <= 1009 -> Storm with Gale
Last 12 hours:
  - drop of 8 hPa and pressure <= 1005 and storm conditions -> Severe Thunderstorm

Rules are additive: every rule that matches raises its flags.
"""

import enum
import logging

logger = logging.getLogger(__name__)

MASK_WIDTH = 8


class AlertMask(enum.IntFlag):
    NONE = 0
    GALE = 1
    STRONG_WIND = 2
    POOR = 4
    RAIN = 8
    WIND = 16
    STORM = 32
    FIRESTORM = 64
    SEVERE_THUNDERSTORM = 128


def classify(delta12h: float, delta3h: float, pressure: float, temperature: float) -> AlertMask:
    """Return every alert flag raised by the given trend and current conditions."""
    logger.debug(
        "Classify: delta12h=%s delta3h=%s pressure=%s temperature=%s",
        delta12h, delta3h, pressure, temperature,
    )

    alert = AlertMask.NONE

    # Rising pressure
    if delta3h >= 10:
        alert |= AlertMask.GALE
    if delta3h >= 6:
        alert |= AlertMask.STRONG_WIND
    if 1.1 <= delta3h <= 2.7 and pressure >= 1015:
        alert |= AlertMask.POOR

    # Falling pressure
    if -2.7 <= delta3h <= -1.1 and pressure <= 1009:
        alert |= AlertMask.RAIN | AlertMask.WIND
    if delta3h <= -4 and pressure <= 1009:
        alert |= AlertMask.STORM
    if delta3h <= -4 and 1009 < pressure <= 1023:
        alert |= AlertMask.RAIN | AlertMask.WIND
    if delta3h <= -6 and pressure <= 1009:
        alert |= AlertMask.STORM | AlertMask.STRONG_WIND
    if delta3h <= -7 and pressure <= 990 and temperature >= 40:
        alert |= AlertMask.FIRESTORM
    if delta3h <= -10 and pressure <= 1009:
        alert |= AlertMask.STORM | AlertMask.GALE

    if delta12h <= -8 and delta3h <= -4 and pressure <= 1005:
        alert |= AlertMask.SEVERE_THUNDERSTORM

    logger.debug("Alert: 0b%s", encode_mask(alert))
    return alert


def encode_mask(mask: AlertMask) -> str:
    """Render a mask as its fixed-width binary wire form, e.g. ``"00000011"``."""
    value = int(mask)
    assert 0 <= value < (1 << MASK_WIDTH), f"alert mask out of range: {value}"
    return format(value, f"0{MASK_WIDTH}b")


def decode_mask(wire: str) -> AlertMask:
    """Parse the binary wire form back into a mask."""
    if len(wire) != MASK_WIDTH or set(wire) - {"0", "1"}:
        raise ValueError(f"expected {MASK_WIDTH} binary digits, got {wire!r}")
    return AlertMask(int(wire, 2))


def flag_names(mask: AlertMask) -> list[str]:
    """Names of the raised flags, lowest bit first."""
    return [flag.name for flag in AlertMask if flag and flag in mask]

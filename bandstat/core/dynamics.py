"""
Dynamics calculator.

Dynamics is the population standard deviation, in dB, of a band's level
across sub-windows (the analysis frames). Frames where the band is
silent, or more than DYNAMICS_FLOOR_DB below its loudest frame, do not
count. Bands holding less than DYNAMICS_THRESHOLD_PCT of the energy on
average are reported as undefined.
"""

import logging

import librosa
import numpy as np

from bandstat.core.distribution import to_percentages
from bandstat.core.models import DynamicsProfile

DYNAMICS_THRESHOLD_PCT: float = 0.5
DYNAMICS_FLOOR_DB: float = 60.0
MIN_POWER: float = 1e-20

logger = logging.getLogger(__name__)


def compute_dynamics(
    frame_band_energies: np.ndarray,
    threshold_pct: float = DYNAMICS_THRESHOLD_PCT,
    floor_db: float = DYNAMICS_FLOOR_DB,
) -> DynamicsProfile:
    """
    Compute per-band dynamics from per-frame band energies.

    Args:
        frame_band_energies: (frames, bands) energy matrix
        threshold_pct: Minimum mean per-frame share for a defined value
        floor_db: Frames this far below the band's peak are ignored

    Returns:
        DynamicsProfile: dB spread per band, None where undefined
    """
    energies = np.atleast_2d(np.asarray(frame_band_energies, dtype=np.float64))
    num_bands = energies.shape[1]
    if energies.shape[0] == 0:
        return DynamicsProfile((None,) * num_bands)

    mean_share = to_percentages(energies).mean(axis=0)
    levels_db = librosa.power_to_db(energies, ref=1.0, amin=MIN_POWER, top_db=None)

    values = []
    for band in range(num_bands):
        if mean_share[band] < threshold_pct:
            values.append(None)
            continue

        audible = energies[:, band] > MIN_POWER
        levels = levels_db[audible, band]
        if levels.size == 0:
            values.append(None)
            continue
        levels = levels[levels >= levels.max() - floor_db]
        values.append(float(np.std(levels)))

    logger.debug(
        f"Dynamics over {energies.shape[0]} frames: "
        f"{sum(v is not None for v in values)}/{num_bands} bands defined"
    )
    return DynamicsProfile(tuple(values))

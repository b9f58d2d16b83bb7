"""Export a Snapshot as the native JSON backup.

The only lossless format: every waypoint field including the full photo,
circles as real circles, and the track with its timestamps.
"""

from __future__ import annotations

import json

from fieldmap.model import Snapshot


def export_json(snapshot: Snapshot) -> str:
    """Pretty-printed backup document.

    Raises:
        ValueError: If the snapshot holds NaN or infinite numbers, which
            JSON cannot represent.
    """
    return json.dumps(snapshot.to_dict(), indent=2, allow_nan=False)

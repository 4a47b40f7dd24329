"""Drive-risk advisory helpers.

Conservative messaging for driving decisions based on estimated BAC. It is
educational only and never guarantees legal/safe driving.
"""

from bac_engine.calculations import BacStatus, to_grams_per_liter
from bac_engine.session import Session


def get_drive_advice(session: Session) -> dict:
    """Return conservative drive-risk guidance for a session's current state."""
    config = session.config
    legal_limit = config.legal_threshold
    legal_hours = round(session.legal_time.total_seconds() / 3600.0, 1)
    sober_hours = round(session.sober_time.total_seconds() / 3600.0, 1)
    base = {"legal_limit_bac": legal_limit, "legal_time_hours": legal_hours}

    if session.current_bac > legal_limit:
        return {
            **base,
            "status": "do_not_drive",
            "title": "Above legal limit",
            "message": f"Estimated BAC is above {to_grams_per_liter(legal_limit):.1f} g/L. Do not drive.",
            "action": f"Use a taxi or a sober driver. Earliest legal estimate in about {legal_hours}h.",
        }

    if session.status is BacStatus.DANGER or session.status is BacStatus.CAUTION:
        return {
            **base,
            "status": "do_not_drive",
            "title": "Likely impaired",
            "message": "Estimated BAC is under the legal limit but still in an impairment range.",
            "action": f"Do not drive. Wait about {max(1.0, sober_hours)}h and recheck.",
        }

    if session.current_bac > 0:
        return {
            **base,
            "status": "caution",
            "title": "Residual alcohol",
            "message": "Estimated BAC is low but not zero.",
            "action": "Safest choice is still not to drive.",
        }

    return {
        **base,
        "status": "ok",
        "title": "No alcohol in the estimate",
        "message": "Estimated BAC is 0.000 right now.",
        "action": "If you have not consumed alcohol, impairment risk is lower.",
    }

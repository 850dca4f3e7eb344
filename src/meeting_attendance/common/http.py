from __future__ import annotations

import logging
from functools import wraps

from flask import jsonify, request

from ..core.exceptions import (
    BackingStoreUnavailable,
    ConfirmationRequired,
    EnrollmentBlocked,
    RegistrationFailed,
    ValidationError,
)

logger = logging.getLogger(__name__)


def json_errors(view):
    """Map domain errors to JSON responses; unexpected errors become a bare 500."""

    @wraps(view)
    def wrapper(*args, **kwargs):
        try:
            return view(*args, **kwargs)
        except EnrollmentBlocked as e:
            return jsonify({"success": False, "message": str(e), "member_id": e.member_id}), 400
        except ValidationError as e:
            return jsonify({"success": False, "message": str(e)}), 400
        except ConfirmationRequired as e:
            return (
                jsonify({"success": False, "message": str(e), "member_ids": sorted(e.member_ids)}),
                409,
            )
        except (BackingStoreUnavailable, RegistrationFailed) as e:
            logger.warning("Request %s failed: %s", request.path, e)
            return (
                jsonify({"success": False, "retryable": True, "message": "Storage is unavailable, please retry"}),
                503,
            )
        except Exception:
            logger.exception("Unhandled error on %s", request.path)
            return jsonify({"success": False, "message": "Internal error"}), 500

    return wrapper

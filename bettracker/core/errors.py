from typing import Any, Dict, List, Optional

from fastapi import Request, status
from fastapi.responses import JSONResponse


class BetTrackerError(Exception):
    """Base for every error the API reports to the caller verbatim."""

    status_code = status.HTTP_400_BAD_REQUEST

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message

    def payload(self) -> Dict[str, Any]:
        return {"success": False, "error": self.message}


class AuthError(BetTrackerError):
    status_code = status.HTTP_401_UNAUTHORIZED


class StakeValidationError(BetTrackerError):
    status_code = 422

    def __init__(self, errors: List[str]):
        super().__init__("; ".join(errors) or "Invalid participant stakes")
        self.errors = list(errors)

    def payload(self) -> Dict[str, Any]:
        body = super().payload()
        body["errors"] = self.errors
        return body


class BetNotFoundError(BetTrackerError):
    status_code = status.HTTP_404_NOT_FOUND

    def __init__(self, bet_id: str):
        super().__init__(f"Bet not found with ID: {bet_id}")
        self.bet_id = bet_id


class PermissionDeniedError(BetTrackerError):
    status_code = status.HTTP_403_FORBIDDEN


class AlreadySettledError(BetTrackerError):
    status_code = status.HTTP_409_CONFLICT

    def __init__(self, bet_id: str, current_status: str):
        super().__init__(f"Bet is already settled with status: {current_status}")
        self.bet_id = bet_id
        self.current_status = current_status

    def payload(self) -> Dict[str, Any]:
        body = super().payload()
        body.update(bet_id=self.bet_id, current_status=self.current_status)
        return body


class InvalidStatusError(BetTrackerError):
    def __init__(self, value: Optional[str]):
        super().__init__(f"Invalid status {value!r}. Must be: won, lost, void, or push")
        self.value = value


class UpstreamExtractionError(BetTrackerError):
    status_code = status.HTTP_502_BAD_GATEWAY


async def bettracker_error_handler(request: Request, exc: BetTrackerError) -> JSONResponse:
    return JSONResponse(status_code=exc.status_code, content=exc.payload())

from datetime import datetime, timezone
from typing import Any

from fastapi import APIRouter, Depends, HTTPException

from ..auth.deps import get_current_user
from ..config import RL_CONNECTION_PROPOSE_LIMIT, RL_CONNECTION_RESPOND_LIMIT, RL_WINDOW_SECONDS
from ..errors import ConnectionActionNotAllowed, ConnectionNotFound, DuplicateProposalError, ProposalRejected
from ..http_helpers import parse_uuid, validate_proposal_details
from ..schemas import ProposalRequest
from ..services.connections import dashboard, propose_connection, respond_to_connection
from ..services.rate_limit import rate_limit_dependency

router = APIRouter()

RL_CONNECTION_PROPOSE = rate_limit_dependency("connection_propose", RL_CONNECTION_PROPOSE_LIMIT, RL_WINDOW_SECONDS)
RL_CONNECTION_RESPOND = rate_limit_dependency("connection_respond", RL_CONNECTION_RESPOND_LIMIT, RL_WINDOW_SECONDS)


@router.get("/connections")
def list_connections(current_user: dict[str, Any] = Depends(get_current_user)) -> dict[str, Any]:
    return dashboard(str(current_user["id"]), datetime.now(timezone.utc))


@router.post("/connections", status_code=201)
def create_connection(
    payload: ProposalRequest,
    current_user: dict[str, Any] = Depends(get_current_user),
    _: None = RL_CONNECTION_PROPOSE,
) -> dict[str, Any]:
    receiver_id = parse_uuid(payload.receiver_id, detail="receiver_id must be a valid UUID")
    details = validate_proposal_details(payload.model_dump())
    try:
        connection = propose_connection(
            str(current_user["id"]),
            receiver_id,
            details,
            datetime.now(timezone.utc),
        )
    except DuplicateProposalError as exc:
        raise HTTPException(status_code=409, detail=str(exc)) from exc
    except ProposalRejected as exc:
        raise HTTPException(status_code=400, detail=str(exc)) from exc
    return connection.as_dict()


def _respond(connection_id: str, user_id: str, action: str) -> dict[str, Any]:
    connection_id = parse_uuid(connection_id, status_code=404, detail="Match not found")
    try:
        connection = respond_to_connection(connection_id, user_id, action, datetime.now(timezone.utc))
    except ConnectionNotFound as exc:
        raise HTTPException(status_code=404, detail="Match not found") from exc
    except ConnectionActionNotAllowed as exc:
        raise HTTPException(status_code=exc.status_code, detail=str(exc)) from exc
    return connection.as_dict()


@router.post("/connections/{connection_id}/accept")
def accept_connection(
    connection_id: str,
    current_user: dict[str, Any] = Depends(get_current_user),
    _: None = RL_CONNECTION_RESPOND,
) -> dict[str, Any]:
    return _respond(connection_id, str(current_user["id"]), "accept")


@router.post("/connections/{connection_id}/decline")
def decline_connection(
    connection_id: str,
    current_user: dict[str, Any] = Depends(get_current_user),
    _: None = RL_CONNECTION_RESPOND,
) -> dict[str, Any]:
    return _respond(connection_id, str(current_user["id"]), "decline")

"""HTTP binding of the game operations"""

from typing import Optional
from uuid import UUID

from fastapi import APIRouter, Depends, Request
from sqlalchemy.orm import Session

from src.api.models import (
    ActionResponse,
    ClaimRoundResponse,
    CreateGameRequest,
    FinalStatsRequest,
    FinalStatsResponse,
    FinishGameResponse,
    GameStateResponse,
    GetStateRequest,
    JoinedGameResponse,
    JoinGameBody,
    JoinGameRequest,
    MessItUpResponse,
    MoveTileBody,
    MoveTileRequest,
    MoveTileResponse,
    PlayerActionBody,
    PlayerActionRequest,
    StuckResponse,
    ValidateWordsRequest,
    ValidateWordsResponse,
)
from src.db.database import get_db
from src.db.sql_repository import SQLGameRepository, SQLWordCache
from src.services.dictionary import DictionaryValidator
from src.services.game_service import GameService

router = APIRouter()


def get_service(request: Request, db: Session = Depends(get_db)) -> GameService:
    """One service per request, sharing the process-wide game locks."""
    return GameService(
        repository=SQLGameRepository(db),
        dictionary=DictionaryValidator(SQLWordCache(db)),
        locks=request.app.state.locks,
        commentator=request.app.state.commentator,
    )


@router.get("/health")
def health() -> dict[str, str]:
    return {"status": "ok"}


@router.post("/validate", response_model=ValidateWordsResponse)
def validate_words(
    body: ValidateWordsRequest, service: GameService = Depends(get_service)
) -> ValidateWordsResponse:
    return service.validate_words(body)


@router.post("/games", response_model=JoinedGameResponse)
def create_game(
    body: CreateGameRequest, service: GameService = Depends(get_service)
) -> JoinedGameResponse:
    return service.create_game(body)


@router.post("/games/{join_code}/join", response_model=JoinedGameResponse)
def join_game(
    join_code: str, body: JoinGameBody, service: GameService = Depends(get_service)
) -> JoinedGameResponse:
    return service.join_game(JoinGameRequest(join_code=join_code, **body.model_dump()))


@router.get("/games/{join_code}/state", response_model=GameStateResponse)
def get_state(
    join_code: str,
    player_id: Optional[UUID] = None,
    service: GameService = Depends(get_service),
) -> GameStateResponse:
    return service.get_game_state(GetStateRequest(join_code=join_code, player_id=player_id))


@router.post("/games/{game_id}/start", response_model=ActionResponse)
def start_game(
    game_id: UUID, body: PlayerActionBody, service: GameService = Depends(get_service)
) -> ActionResponse:
    return service.start_game(PlayerActionRequest(game_id=game_id, player_id=body.player_id))


@router.post("/games/{game_id}/move", response_model=MoveTileResponse)
def move_tile(
    game_id: UUID, body: MoveTileBody, service: GameService = Depends(get_service)
) -> MoveTileResponse:
    return service.move_tile(
        MoveTileRequest(
            game_id=game_id,
            player_id=body.player_id,
            tile_id=body.tile_id,
            destination=body.destination,
        )
    )


@router.post("/games/{game_id}/split", response_model=MessItUpResponse)
def mess_it_up(
    game_id: UUID, body: PlayerActionBody, service: GameService = Depends(get_service)
) -> MessItUpResponse:
    return service.mess_it_up(PlayerActionRequest(game_id=game_id, player_id=body.player_id))


@router.post("/games/{game_id}/claim-round", response_model=ClaimRoundResponse)
def claim_round(
    game_id: UUID, body: PlayerActionBody, service: GameService = Depends(get_service)
) -> ClaimRoundResponse:
    return service.claim_round(PlayerActionRequest(game_id=game_id, player_id=body.player_id))


@router.post("/games/{game_id}/stuck", response_model=StuckResponse)
def stuck(
    game_id: UUID, body: PlayerActionBody, service: GameService = Depends(get_service)
) -> StuckResponse:
    return service.stuck(PlayerActionRequest(game_id=game_id, player_id=body.player_id))


@router.post("/games/{game_id}/finish", response_model=FinishGameResponse)
def finish_game(
    game_id: UUID, body: PlayerActionBody, service: GameService = Depends(get_service)
) -> FinishGameResponse:
    return service.finish_game(PlayerActionRequest(game_id=game_id, player_id=body.player_id))


@router.get("/games/{game_id}/final-stats", response_model=FinalStatsResponse)
def final_stats(
    game_id: UUID, service: GameService = Depends(get_service)
) -> FinalStatsResponse:
    return service.get_final_stats(FinalStatsRequest(game_id=game_id))

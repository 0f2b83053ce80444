from datetime import datetime, timezone
import logging
import os
from typing import Optional

from fastapi import FastAPI, HTTPException
from fastapi.middleware.cors import CORSMiddleware
import sentry_sdk
from sentry_sdk.integrations.fastapi import FastApiIntegration
from sentry_sdk.integrations.logging import LoggingIntegration
from starlette.requests import Request

from backend.app.core.config import settings
from backend.app.core.logging import configure_logging
from backend.app.db.session import engine
from backend.app.stats.service import StatsService
from backend.app.stats.warehouse import Warehouse

configure_logging(settings.log_level)

app = FastAPI(title="Stats HQ Engine", version="0.1.0")

logger = logging.getLogger(__name__)

app.add_middleware(
    CORSMiddleware,
    allow_origins=sorted({settings.frontend_url, "http://localhost:3000", "http://127.0.0.1:3000"}),
    allow_credentials=True,
    allow_methods=["GET"],
    allow_headers=["*"],
)


def _init_sentry() -> None:
    dsn = (os.getenv("SENTRY_DSN") or "").strip()
    if not dsn:
        return

    try:
        traces_sample_rate = float(os.getenv("SENTRY_TRACES_SAMPLE_RATE", "0.1"))
    except ValueError:
        traces_sample_rate = 0.1

    sentry_sdk.init(
        dsn=dsn,
        environment=os.getenv("SENTRY_ENVIRONMENT", settings.app_env),
        release=os.getenv("SENTRY_RELEASE") or "unknown",
        traces_sample_rate=traces_sample_rate,
        integrations=[
            FastApiIntegration(),
            LoggingIntegration(level=logging.INFO, event_level=logging.ERROR),
        ],
    )


_init_sentry()


@app.middleware("http")
async def sentry_request_context(request: Request, call_next):
    scope = sentry_sdk.get_current_scope()
    scope.set_tag("method", request.method)
    scope.set_tag("path", request.url.path)
    for param in ("player_id", "type", "season"):
        value = request.path_params.get(param) or request.query_params.get(param)
        if value is not None:
            scope.set_tag(param, str(value))

    return await call_next(request)


def get_service() -> StatsService:
    return StatsService(Warehouse(engine))


@app.get("/health")
def healthcheck():
    return {
        "status": "ok",
        "env": settings.app_env,
        "timestamp": datetime.now(timezone.utc).isoformat(),
    }


@app.get("/api/mlb/players/{player_id}/stats")
def get_player_stats(
    player_id: str,
    type: str = "batting",
    season: Optional[str] = None,
    ranks: bool = False,
):
    """Single-season or career line (season=career|all|... or omitted)."""
    try:
        return get_service().player_stats(player_id, type, season, with_ranks=ranks)
    except ValueError as exc:
        raise HTTPException(status_code=400, detail=str(exc)) from exc
    except Exception as exc:
        logger.exception("Player stats failed for player_id=%s type=%s season=%s", player_id, type, season)
        raise HTTPException(status_code=500, detail="Failed to fetch player stats") from exc


@app.get("/api/mlb/players/{player_id}/seasons")
def get_player_seasons(player_id: str, type: str = "batting", ranks: bool = True):
    try:
        return get_service().player_season_history(player_id, type, with_ranks=ranks)
    except ValueError as exc:
        raise HTTPException(status_code=400, detail=str(exc)) from exc
    except Exception as exc:
        logger.exception("Season history failed for player_id=%s type=%s", player_id, type)
        raise HTTPException(status_code=500, detail="Failed to fetch season history") from exc


@app.get("/api/mlb/leaderboard")
def get_leaderboard(
    type: str = "batting",
    season: Optional[str] = None,
    order_by: Optional[str] = None,
    limit: Optional[int] = None,
    team_id: Optional[str] = None,
    min_at_bats: Optional[int] = None,
    min_innings: Optional[float] = None,
):
    try:
        return get_service().leaderboard(
            type,
            season,
            order_by=order_by,
            limit=limit,
            team_id=team_id,
            min_at_bats=min_at_bats,
            min_innings=min_innings,
        )
    except ValueError as exc:
        raise HTTPException(status_code=400, detail=str(exc)) from exc
    except Exception as exc:
        logger.exception("Leaderboard failed for type=%s season=%s", type, season)
        raise HTTPException(status_code=500, detail="Failed to fetch leaderboard") from exc


@app.get("/api/mlb/teams/seasons")
def get_team_seasons(season: Optional[str] = None):
    try:
        return get_service().team_seasons(season)
    except ValueError as exc:
        raise HTTPException(status_code=400, detail=str(exc)) from exc
    except Exception as exc:
        logger.exception("Team seasons failed for season=%s", season)
        raise HTTPException(status_code=500, detail="Failed to fetch team stats") from exc


@app.get("/api/mlb/teams/list")
def get_teams_list(season: Optional[str] = None):
    try:
        return get_service().list_teams(season)
    except ValueError as exc:
        raise HTTPException(status_code=400, detail=str(exc)) from exc
    except Exception as exc:
        logger.exception("Teams list failed for season=%s", season)
        raise HTTPException(status_code=500, detail="Failed to fetch teams list") from exc


def main() -> None:
    import uvicorn

    uvicorn.run(app, host=settings.uvicorn_host, port=settings.uvicorn_port)


if __name__ == "__main__":
    main()

from fastapi import Depends, FastAPI
from fastapi.middleware.cors import CORSMiddleware
from strawberry.fastapi import GraphQLRouter

from sqlalchemy.ext.asyncio import AsyncSession

from app.core.config import get_settings
from app.core.errors import NotFoundError
from app.core.logging_config import setup_logging
from app.db.postgresql import get_db
from app.graphql.schema import schema
from app.graphql.context import build_context
from app.services.access_control import evaluate_access

setup_logging()
settings = get_settings()

app = FastAPI(title="Gym Access")

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

graphql_app = GraphQLRouter(
    schema=schema,
    context_getter=build_context,
    graphiql=True
)
app.include_router(graphql_app, prefix="/graphql")


@app.get("/")
def read_root():
    return {"status": "ok"}


@app.get("/clients/{client_id}/is-valid")
async def is_client_valid(client_id: int, db: AsyncSession = Depends(get_db)):
    """Access check for door devices; nothing is recorded."""
    try:
        decision = await evaluate_access(db=db, client_id=client_id)
    except NotFoundError as e:
        return {"clientId": client_id, "isValid": False, "result": None, "message": str(e)}

    return {
        "clientId": client_id,
        "isValid": decision.granted,
        "result": decision.result.value,
        "message": "Client subscription is still active." if decision.granted else decision.reason,
    }

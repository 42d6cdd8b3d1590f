from contextlib import asynccontextmanager
from typing import List
import logging

from fastapi import APIRouter, Depends, FastAPI, status
from fastapi.middleware.cors import CORSMiddleware
from sqlalchemy.engine import Engine
from sqlmodel import Session

from . import config
from . import todos as todo_store
from . import users as user_store
from .auth import Identity, get_current_identity, issue_token
from .database import create_db_engine, get_session, init_db
from .errors import register_exception_handlers
from .schemas import (
    AuthResponse,
    LoginRequest,
    Message,
    RegisterRequest,
    TodoCreate,
    TodoRead,
    TodoUpdate,
    TodoUpdated,
    UserOut,
    VerifyResponse,
)

logger = logging.getLogger(__name__)


def build_router() -> APIRouter:
    router = APIRouter(prefix="/api")

    # --- Authentication ---

    @router.post("/auth/register", response_model=AuthResponse, status_code=status.HTTP_201_CREATED)
    def register_user(user_in: RegisterRequest, db: Session = Depends(get_session)):
        db_user = user_store.create_user(db, user_in.username, user_in.email, user_in.password)
        return {
            "message": "User created successfully",
            "token": issue_token(db_user),
            "user": db_user,
        }

    @router.post("/auth/login", response_model=AuthResponse)
    def login(credentials: LoginRequest, db: Session = Depends(get_session)):
        user = user_store.authenticate(db, credentials.username, credentials.password)
        logger.info("User logged in: %s", user.username)
        return {"message": "Login successful", "token": issue_token(user), "user": user}

    @router.get("/auth/verify", response_model=VerifyResponse, response_model_exclude_none=True)
    def verify(identity: Identity = Depends(get_current_identity)):
        return {"valid": True, "user": UserOut(id=identity.user_id, username=identity.username)}

    # --- Todos ---

    @router.get("/todos", response_model=List[TodoRead])
    def list_todos(identity: Identity = Depends(get_current_identity), db: Session = Depends(get_session)):
        return todo_store.list_todos(db, identity.user_id)

    @router.post("/todos", response_model=TodoRead, status_code=status.HTTP_201_CREATED)
    def create_todo(
        todo_in: TodoCreate,
        identity: Identity = Depends(get_current_identity),
        db: Session = Depends(get_session),
    ):
        return todo_store.create_todo(db, identity.user_id, todo_in.text)

    @router.put("/todos/{id}", response_model=TodoUpdated)
    def update_todo(
        id: int,
        patch: TodoUpdate,
        identity: Identity = Depends(get_current_identity),
        db: Session = Depends(get_session),
    ):
        todo = todo_store.update_todo(db, id, identity.user_id, text=patch.text, completed=patch.completed)
        return {"message": "Todo updated successfully", "todo": todo}

    @router.delete("/todos/{id}", response_model=Message)
    def delete_todo(id: int, identity: Identity = Depends(get_current_identity), db: Session = Depends(get_session)):
        todo_store.delete_todo(db, id, identity.user_id)
        return {"message": "Todo deleted successfully"}

    return router


def create_app(engine: Engine = None) -> FastAPI:
    """
    Creates and configures the FastAPI application.

    `engine` defaults to one built from DATABASE_URL; tests pass their own.
    """
    config.configure_logging()

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        init_db(app.state.engine)
        yield

    app = FastAPI(
        title="Todo App",
        description="Per-user todo lists behind bearer-token authentication.",
        version="1.0.0",
        lifespan=lifespan,
    )
    app.state.engine = engine if engine is not None else create_db_engine()

    # --- Middleware Configuration ---
    app.add_middleware(
        CORSMiddleware,
        allow_origins=config.CORS_ORIGINS,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )
    register_exception_handlers(app)

    @app.get("/")
    def read_root():
        return {"message": "Todo app with authentication ready!"}

    app.include_router(build_router())
    return app


app = create_app()


if __name__ == "__main__":
    import uvicorn
    uvicorn.run(app, host=config.HOST, port=config.PORT)

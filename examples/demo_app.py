#!/usr/bin/env python3
"""Sample host API instrumented by BoarDB.

Run with ``uvicorn examples.demo_app:app --port 3000`` and open the
dashboard on port 3333. Set DB_HOST/DB_USER/DB_PASSWORD/DB_NAME (or DB_URL)
to have the database explorer connect on startup.
"""
from contextlib import asynccontextmanager
from typing import Dict, List, Optional

from fastapi import FastAPI, HTTPException
from pydantic import BaseModel

from boardb.core import BoarDB
from boardb.errors import DatabaseError
from boardb.logging_utils import get_logger
from boardb.middleware import ApiWrapperOptions

log = get_logger("demo")


class UserIn(BaseModel):
    name: str
    email: str


class UserPatch(BaseModel):
    name: Optional[str] = None
    email: Optional[str] = None


boardb = BoarDB()


@asynccontextmanager
async def lifespan(_app):
    boardb.start()
    if boardb.config.get("database"):
        try:
            boardb.connect_db(boardb.config["database"])
        except DatabaseError as e:
            log.warning("demo.auto_connect_failed", extra={"error": str(e)})
    try:
        yield
    finally:
        boardb.stop()


app = FastAPI(title="BoarDB demo", lifespan=lifespan)
boardb.api_wrapper(app, ApiWrapperOptions(exclude_paths=["/health"], include_body=False))

USERS: List[Dict[str, object]] = [
    {"id": 1, "name": "John Doe", "email": "john@example.com"},
    {"id": 2, "name": "Jane Smith", "email": "jane@example.com"},
    {"id": 3, "name": "Bob Johnson", "email": "bob@example.com"},
]


@app.get("/health")
def health():
    return {"status": "ok"}


@app.get("/api/users")
def list_users():
    return USERS


@app.get("/api/users/{user_id}")
def get_user(user_id: int):
    for u in USERS:
        if u["id"] == user_id:
            return u
    raise HTTPException(status_code=404, detail="User not found")


@app.post("/api/users", status_code=201)
def create_user(body: UserIn):
    user = {"id": max((int(u["id"]) for u in USERS), default=0) + 1, **body.model_dump()}
    USERS.append(user)
    return user


@app.put("/api/users/{user_id}")
def update_user(user_id: int, body: UserPatch):
    for u in USERS:
        if u["id"] == user_id:
            u.update(body.model_dump(exclude_none=True))
            return u
    raise HTTPException(status_code=404, detail="User not found")


@app.delete("/api/users/{user_id}", status_code=204)
def delete_user(user_id: int):
    for i, u in enumerate(USERS):
        if u["id"] == user_id:
            USERS.pop(i)
            return None
    raise HTTPException(status_code=404, detail="User not found")


@app.get("/api/error")
def boom():
    raise HTTPException(status_code=500, detail="Intentional error")

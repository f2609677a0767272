"""Walk-in booking customer step.

Endpoints:
  GET  /console/walk-in/                  → current walk-in state
  POST /console/walk-in/search            → debounced search by phone (found → preselected)
  POST /console/walk-in/select/{id}       → pick one of several matches
  PUT  /console/walk-in/new-customer      → details for a profile to create
  POST /console/walk-in/confirm           → create the profile (explicit confirm)
  POST /console/walk-in/reset             → start over
"""

from fastapi import APIRouter, Depends
from pydantic import BaseModel

from beautydesk.schemas.customers import WalkInCustomer, WalkInState
from beautydesk.session import ConsoleSession, get_session

router = APIRouter()


class PhoneSearch(BaseModel):
    phone: str


@router.get("/", response_model=WalkInState)
async def get_state(session: ConsoleSession = Depends(get_session)):
    return session.walk_in.state()


@router.post("/search", response_model=WalkInState)
async def search(body: PhoneSearch, session: ConsoleSession = Depends(get_session)):
    await session.walk_in.search(body.phone)
    return session.walk_in.state()


@router.post("/select/{customer_id}", response_model=WalkInState)
async def select(customer_id: str, session: ConsoleSession = Depends(get_session)):
    session.walk_in.select(customer_id)
    return session.walk_in.state()


@router.put("/new-customer", response_model=WalkInState)
async def update_new_customer(body: WalkInCustomer, session: ConsoleSession = Depends(get_session)):
    session.walk_in.update_new_customer(body)
    return session.walk_in.state()


@router.post("/confirm", response_model=WalkInState)
async def confirm(session: ConsoleSession = Depends(get_session)):
    await session.walk_in.confirm_new_customer()
    return session.walk_in.state()


@router.post("/reset", response_model=WalkInState)
async def reset(session: ConsoleSession = Depends(get_session)):
    session.walk_in.reset()
    return session.walk_in.state()

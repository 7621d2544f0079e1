# stockpile/api/v1/main.py
from fastapi import APIRouter

router = APIRouter()


@router.get("/")
async def index():
    """Public entry point"""
    return {}

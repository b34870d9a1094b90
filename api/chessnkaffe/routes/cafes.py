from typing import Any

from fastapi import APIRouter, HTTPException

from ..services.cafes import cafe_address_label, get_cafe, suggest_cafes

router = APIRouter()


def _cafe_out(cafe: dict[str, Any]) -> dict[str, Any]:
    # address_label is what a proposal sends back as cafe_address
    return {**cafe, "address_label": cafe_address_label(cafe)}


@router.get("/cafes")
def list_cafes(area: str | None = None) -> dict[str, Any]:
    cafes = [_cafe_out(c) for c in suggest_cafes(area)]
    return {"cafes": cafes, "total": len(cafes)}


@router.get("/cafes/{cafe_id}")
def get_cafe_detail(cafe_id: str) -> dict[str, Any]:
    cafe = get_cafe(cafe_id)
    if cafe is None:
        raise HTTPException(status_code=404, detail="Café not found")
    return _cafe_out(cafe)

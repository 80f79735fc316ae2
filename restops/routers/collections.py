"""
Record store router: read or replace a whole named collection.

Row-level editing happens in the data entry screens; they PUT the full
collection back after each change.
"""
from typing import Any, List, Union

from fastapi import APIRouter, Body, Depends, HTTPException, status

from restops.core.deps import get_record_store
from restops.services.record_store import COLLECTIONS, KEYED_COLLECTIONS, RecordStore


router = APIRouter(prefix="/collections", tags=["collections"])


def _check_name(name: str) -> None:
    if name not in COLLECTIONS:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=f"Unknown collection: {name}")


@router.get("")
def list_collections():
    """Names of the collections the store exposes."""
    return {"collections": list(COLLECTIONS)}


@router.get("/{name}")
def read_collection(name: str, store: RecordStore = Depends(get_record_store)):
    _check_name(name)
    return {"name": name, "records": store.read(name)}


@router.put("/{name}")
def replace_collection(
    name: str,
    records: Union[List[Any], dict] = Body(..., embed=True),
    store: RecordStore = Depends(get_record_store),
):
    """Replace a collection. Keyed collections take an object, the rest a list of records."""
    _check_name(name)
    keyed = name in KEYED_COLLECTIONS
    if keyed and not isinstance(records, dict):
        raise HTTPException(status_code=status.HTTP_422_UNPROCESSABLE_ENTITY, detail=f"{name} expects an object")
    if not keyed and not isinstance(records, list):
        raise HTTPException(status_code=status.HTTP_422_UNPROCESSABLE_ENTITY, detail=f"{name} expects a list")

    store.write(name, records)
    return {"name": name, "records": store.read(name)}

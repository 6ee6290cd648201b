import json
from typing import List

from fastapi import FastAPI, UploadFile, File, HTTPException
from .errors import RecordNestError
from .models import HealthResponse, SerializeRequest, SerializeResponse
from .normalize import decode_bytes
from .records import detect_entity_kind
from .serialize import default_engine, encode, restructure, sha256_hex

app = FastAPI(
    title="record-nest",
    description="Deterministic restructuring of flat records into nested JSON documents",
    version="0.1.0",
)


def _serialize_one(record, entity_kind, module_name, hide_empty) -> dict:
    engine = default_engine()
    if entity_kind is None and module_name:
        entity_kind = detect_entity_kind({"module_name": module_name}, engine.ruleset.person_modules)

    try:
        tree, report = restructure(record, entity_kind, hide_empty, engine=engine)
    except RecordNestError as exc:
        raise HTTPException(status_code=422, detail=str(exc))

    return {
        "document": tree,
        "sha256": sha256_hex(encode(tree)),
        "report": report,
    }


@app.get("/health", response_model=HealthResponse)
def health():
    return {"ok": True}


@app.post("/serialize", response_model=SerializeResponse)
def serialize_record(request: SerializeRequest):
    return _serialize_one(request.record, request.entity_kind, request.module_name, request.hide_empty)


@app.post("/serialize/file", response_model=List[SerializeResponse])
async def serialize_file(file: UploadFile = File(...), hide_empty: bool = True):
    if not file.filename.lower().endswith(".json"):
        raise HTTPException(status_code=422, detail="Only JSON files are supported")

    raw = await file.read()
    try:
        data = json.loads(decode_bytes(raw))
    except json.JSONDecodeError as exc:
        raise HTTPException(status_code=422, detail=f"Invalid JSON: {exc}")

    records = data if isinstance(data, list) else [data]
    if not all(isinstance(r, dict) for r in records):
        raise HTTPException(status_code=422, detail="Expected a JSON object or a list of objects")

    return [_serialize_one(r, None, None, hide_empty) for r in records]

import logging
from typing import List, Optional

from fastapi import APIRouter, Depends, HTTPException, WebSocket, WebSocketDisconnect
from pydantic import BaseModel

from storage_sweeper.core.exceptions import (
    MalformedDeletionRequestError,
    UnknownFeatureError,
    UnknownScanError,
)
from storage_sweeper.core.scan_result_repository import ScanResultRepository
from storage_sweeper.dependencies import get_result_repository, get_scan_service
from storage_sweeper.models import DeletionReport, ScanItem, ScanOutcome, ScanProgress, ScanStatus
from storage_sweeper.services.features import PROFILES, FeatureKind
from storage_sweeper.services.scan_service import ScanService, ScanSession
from storage_sweeper.services.scanner.deduplicator import select_deletable

router = APIRouter(prefix="/api", tags=["scans"])


class FeatureInfo(BaseModel):
    name: str
    description: str
    mode: str


class ScanSessionInfo(BaseModel):
    scan_id: str
    feature: str
    status: ScanStatus
    progress: Optional[ScanProgress] = None
    outcome: Optional[ScanOutcome] = None


class DeletionRequest(BaseModel):
    items: List[ScanItem]


def _session_info(session: ScanSession, include_outcome: bool = True) -> ScanSessionInfo:
    return ScanSessionInfo(
        scan_id=session.scan_id,
        feature=session.feature,
        status=session.status,
        progress=session.latest_progress,
        outcome=session.outcome if include_outcome else None,
    )


@router.get("/features", response_model=List[FeatureInfo])
async def list_features():
    return [
        FeatureInfo(name=kind.value, description=profile.description, mode=profile.mode.value)
        for kind, profile in PROFILES.items()
    ]


@router.post("/scans/{feature}", response_model=ScanSessionInfo, status_code=202)
async def start_scan(feature: str, scan_service: ScanService = Depends(get_scan_service)):
    try:
        session = await scan_service.start_scan(feature)
    except UnknownFeatureError as e:
        raise HTTPException(status_code=404, detail=str(e))
    logging.info(f"Scan requested for '{feature}' -> {session.scan_id}")
    return _session_info(session, include_outcome=False)


@router.get("/scans", response_model=List[ScanSessionInfo])
async def list_scans(scan_service: ScanService = Depends(get_scan_service)):
    return [_session_info(s, include_outcome=False) for s in scan_service.list_sessions()]


@router.get("/scans/{scan_id}", response_model=ScanSessionInfo)
async def get_scan(scan_id: str, scan_service: ScanService = Depends(get_scan_service)):
    try:
        return _session_info(scan_service.get_session(scan_id))
    except UnknownScanError as e:
        raise HTTPException(status_code=404, detail=str(e))


@router.post("/scans/{scan_id}/cancel", response_model=ScanSessionInfo)
async def cancel_scan(scan_id: str, scan_service: ScanService = Depends(get_scan_service)):
    try:
        session = scan_service.cancel(scan_id)
    except UnknownScanError as e:
        raise HTTPException(status_code=404, detail=str(e))
    return _session_info(session, include_outcome=False)


@router.get("/results/{feature}", response_model=ScanOutcome)
async def get_results(feature: str, repository: ScanResultRepository = Depends(get_result_repository)):
    outcome = await repository.get(feature)
    if outcome is None:
        raise HTTPException(status_code=404, detail=f"No stored results for '{feature}'")
    return outcome


@router.get("/results/duplicates/deletable", response_model=List[ScanItem])
async def get_deletable_duplicates(repository: ScanResultRepository = Depends(get_result_repository)):
    """Every stored duplicate except the one original kept per group."""
    outcome = await repository.get(FeatureKind.DUPLICATES.value)
    if outcome is None:
        raise HTTPException(status_code=404, detail="No stored duplicate results")
    return select_deletable(outcome.groups)


@router.post("/deletions", response_model=DeletionReport)
async def delete_items(request: DeletionRequest, scan_service: ScanService = Depends(get_scan_service)):
    try:
        return await scan_service.delete_items(request.items)
    except MalformedDeletionRequestError as e:
        raise HTTPException(status_code=400, detail=str(e))


@router.websocket("/ws/scans/{scan_id}")
async def scan_progress_stream(websocket: WebSocket, scan_id: str, scan_service: ScanService = Depends(get_scan_service)):
    """Streams progress snapshots, then the final outcome, for one scan."""
    await websocket.accept()
    try:
        session = scan_service.get_session(scan_id)
    except UnknownScanError as e:
        await websocket.close(code=4404, reason=str(e))
        return

    try:
        async for snapshot in session.progress():
            await websocket.send_json({"type": "progress", "data": snapshot.model_dump(mode="json")})
        outcome = await session.result()
        await websocket.send_json({"type": "outcome", "data": outcome.model_dump(mode="json")})
        await websocket.close()
    except WebSocketDisconnect:
        logging.debug(f"Progress stream for {scan_id} disconnected")

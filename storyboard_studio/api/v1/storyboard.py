from __future__ import annotations

from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Response, status

from ... import schemas
from ...generation import GenerationController
from ...models import IN_FLIGHT_STATUSES, Shot, Storyboard
from ...storyboard.parser import parse_storyboard
from ...store import ShotNotFoundError, StoryboardNotFoundError, StoryboardStore
from ..deps import get_controller, get_existing_controller, get_store

router = APIRouter(prefix="/storyboard", tags=["storyboard"])


def generation_state(shot: Shot, controller: Optional[GenerationController]) -> schemas.GenerationState:
    if controller is None:
        is_generating = shot.status in IN_FLIGHT_STATUSES
        error = shot.error
    else:
        is_generating = controller.is_generating(shot.id)
        error = controller.error(shot.id) or shot.error
    return schemas.GenerationState(
        shot_id=shot.id,
        task_id=shot.task_id,
        status=shot.status,
        is_generating=is_generating,
        progress_ratio=shot.progress_ratio or 0.0,
        progress_text=shot.progress_text,
        video_url=shot.video_url,
        error=error,
    )


@router.get("", response_model=Storyboard)
async def get_storyboard(store: StoryboardStore = Depends(get_store)) -> Storyboard:
    try:
        return store.require_storyboard()
    except StoryboardNotFoundError as exc:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(exc)) from exc


@router.post("/parse", response_model=schemas.ParseResponse)
async def parse_message(
    parse_in: schemas.ParseRequest,
    store: StoryboardStore = Depends(get_store),
) -> schemas.ParseResponse:
    storyboard = parse_storyboard(parse_in.content)
    if storyboard is not None:
        store.set_storyboard(storyboard)
    return schemas.ParseResponse(storyboard=storyboard)


@router.put("/shots/order", response_model=Storyboard)
async def reorder_shots(
    reorder_in: schemas.ReorderRequest,
    store: StoryboardStore = Depends(get_store),
) -> Storyboard:
    try:
        return store.reorder_shots(reorder_in.shot_ids)
    except StoryboardNotFoundError as exc:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(exc)) from exc
    except ValueError as exc:
        raise HTTPException(status_code=status.HTTP_422_UNPROCESSABLE_ENTITY, detail=str(exc)) from exc


@router.post("/shots", response_model=Shot, status_code=status.HTTP_201_CREATED)
async def add_shot(
    shot_in: schemas.ShotCreate,
    store: StoryboardStore = Depends(get_store),
) -> Shot:
    shot = Shot(
        description=shot_in.description,
        runway_prompt=shot_in.runway_prompt or shot_in.description,
        camera_angle=shot_in.camera_angle,
        duration=shot_in.duration,
        mood=shot_in.mood,
        notes=shot_in.notes,
    )
    try:
        return store.add_shot(shot)
    except StoryboardNotFoundError as exc:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(exc)) from exc


@router.patch("/shots/{shot_id}", response_model=Shot)
async def update_shot(
    shot_in: schemas.ShotUpdate,
    shot_id: str,
    store: StoryboardStore = Depends(get_store),
) -> Shot:
    updates = shot_in.model_dump(exclude_unset=True, exclude_none=True)
    try:
        return store.update_shot(shot_id, updates)
    except (StoryboardNotFoundError, ShotNotFoundError) as exc:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(exc)) from exc
    except ValueError as exc:
        raise HTTPException(status_code=status.HTTP_422_UNPROCESSABLE_ENTITY, detail=str(exc)) from exc


@router.delete("/shots/{shot_id}", status_code=status.HTTP_204_NO_CONTENT, response_class=Response)
async def remove_shot(
    shot_id: str,
    store: StoryboardStore = Depends(get_store),
) -> Response:
    try:
        store.remove_shot(shot_id)
    except (StoryboardNotFoundError, ShotNotFoundError) as exc:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(exc)) from exc
    return Response(status_code=status.HTTP_204_NO_CONTENT)


@router.put("/selection", response_model=schemas.SelectionResponse)
async def select_shot(
    selection_in: schemas.SelectionRequest,
    store: StoryboardStore = Depends(get_store),
) -> schemas.SelectionResponse:
    try:
        store.select_shot(selection_in.shot_id)
    except (StoryboardNotFoundError, ShotNotFoundError) as exc:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(exc)) from exc
    return schemas.SelectionResponse(selected_shot_id=store.selected_shot_id)


@router.post(
    "/shots/{shot_id}/generation",
    response_model=schemas.GenerationState,
    status_code=status.HTTP_202_ACCEPTED,
)
async def start_generation(
    generation_in: schemas.GenerationStartRequest,
    shot_id: str,
    store: StoryboardStore = Depends(get_store),
    controller: GenerationController = Depends(get_controller),
) -> schemas.GenerationState:
    try:
        store.get_shot(shot_id)
        await controller.start_generation(shot_id, prompt=generation_in.prompt)
        return generation_state(store.get_shot(shot_id), controller)
    except (StoryboardNotFoundError, ShotNotFoundError) as exc:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(exc)) from exc


@router.get("/shots/{shot_id}/generation", response_model=schemas.GenerationState)
async def get_generation(
    shot_id: str,
    store: StoryboardStore = Depends(get_store),
    controller: Optional[GenerationController] = Depends(get_existing_controller),
) -> schemas.GenerationState:
    try:
        return generation_state(store.get_shot(shot_id), controller)
    except (StoryboardNotFoundError, ShotNotFoundError) as exc:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(exc)) from exc


@router.delete("/shots/{shot_id}/generation", response_model=schemas.GenerationState)
async def cancel_generation(
    shot_id: str,
    store: StoryboardStore = Depends(get_store),
    controller: Optional[GenerationController] = Depends(get_existing_controller),
) -> schemas.GenerationState:
    try:
        shot = store.get_shot(shot_id)
    except (StoryboardNotFoundError, ShotNotFoundError) as exc:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(exc)) from exc
    if controller is not None:
        controller.cancel(shot_id)
    return generation_state(shot, controller)

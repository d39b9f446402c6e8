"""FastAPI server for the minisheet browser editor.

Routes are thin wrappers over the shared :class:`EditorService`.
"""

from __future__ import annotations

from typing import Any

from fastapi import FastAPI, HTTPException, Query
from pydantic import BaseModel

from minisheet.logging.events import configure_logging
from minisheet.ui.service import EditorService

# The singleton service is set at startup by ``create_app()``.
_service: EditorService | None = None


def create_app(config: dict[str, Any] | None = None) -> FastAPI:
    """Create the FastAPI application.

    Args:
        config: Merged configuration; defaults when omitted.

    Returns:
        Configured FastAPI instance.
    """
    global _service
    _service = EditorService(config)
    configure_logging(_service.config)

    from minisheet import __version__

    app = FastAPI(title="minisheet", version=__version__)
    app.include_router(_api_router())

    @app.get("/")
    async def index() -> dict[str, Any]:
        return {"name": "minisheet", "version": __version__}

    return app


def _svc() -> EditorService:
    """Get the singleton service, raising if not initialised."""
    if _service is None:
        raise HTTPException(500, "Service not initialised")
    return _service


# ---------------------------------------------------------------------------
# Request models
# ---------------------------------------------------------------------------


class CellRequest(BaseModel):
    addr: str


class EditRequest(BaseModel):
    addr: str
    text: str


class PasteRequest(BaseModel):
    addr: str
    text: str


class ResizeRequest(BaseModel):
    rows: int
    cols: int


class LoadRequest(BaseModel):
    rows: list[list[Any]]


class StructureRequest(BaseModel):
    action: str  # "add" | "remove"


class FormulaRequest(BaseModel):
    text: str


class ShiftRequest(BaseModel):
    text: str
    d_row: int = 0
    d_col: int = 0


# ---------------------------------------------------------------------------
# Router
# ---------------------------------------------------------------------------


def _api_router():
    from fastapi import APIRouter

    router = APIRouter(prefix="/api")

    # -- Sheet --

    @router.get("/sheet")
    async def get_sheet() -> dict[str, Any]:
        return _svc().get_view()

    @router.post("/sheet/edit")
    async def edit_cell(req: EditRequest) -> dict[str, Any]:
        svc = _svc()
        try:
            row, col = svc.cell_at(req.addr)
            svc.edit(row, col, req.text)
        except ValueError as exc:
            raise HTTPException(400, str(exc))
        return {"addr": req.addr, "pending": svc.recalc.pending}

    @router.post("/sheet/focus")
    async def focus_cell(req: CellRequest) -> dict[str, Any]:
        svc = _svc()
        try:
            text = svc.begin_edit(*svc.cell_at(req.addr))
        except ValueError as exc:
            raise HTTPException(400, str(exc))
        return {"addr": req.addr, "text": text}

    @router.post("/sheet/blur")
    async def blur_cell() -> dict[str, Any]:
        svc = _svc()
        svc.end_edit()
        return svc.get_view()

    @router.post("/sheet/rows")
    async def change_rows(req: StructureRequest) -> dict[str, Any]:
        svc = _svc()
        if req.action == "add":
            svc.add_row()
        elif req.action == "remove":
            svc.remove_row()
        else:
            raise HTTPException(400, f"Unknown action: {req.action!r}")
        return svc.get_view()

    @router.post("/sheet/cols")
    async def change_cols(req: StructureRequest) -> dict[str, Any]:
        svc = _svc()
        if req.action == "add":
            svc.add_column()
        elif req.action == "remove":
            svc.remove_column()
        else:
            raise HTTPException(400, f"Unknown action: {req.action!r}")
        return svc.get_view()

    @router.post("/sheet/resize")
    async def resize_sheet(req: ResizeRequest) -> dict[str, Any]:
        svc = _svc()
        try:
            svc.resize(req.rows, req.cols)
        except ValueError as exc:
            raise HTTPException(400, str(exc))
        return svc.get_view()

    @router.post("/sheet/load")
    async def load_sheet(req: LoadRequest) -> dict[str, Any]:
        svc = _svc()
        svc.load_matrix(req.rows)
        return svc.get_view()

    @router.post("/sheet/reset")
    async def reset_sheet() -> dict[str, Any]:
        svc = _svc()
        svc.reset()
        return svc.get_view()

    # -- Clipboard --

    @router.post("/clipboard/copy")
    async def copy_cell(req: CellRequest) -> dict[str, Any]:
        svc = _svc()
        try:
            text = svc.copy(*svc.cell_at(req.addr))
        except ValueError as exc:
            raise HTTPException(400, str(exc))
        return {"addr": req.addr, "text": text}

    @router.post("/clipboard/cut")
    async def cut_cell(req: CellRequest) -> dict[str, Any]:
        svc = _svc()
        try:
            text = svc.cut(*svc.cell_at(req.addr))
        except ValueError as exc:
            raise HTTPException(400, str(exc))
        return {"addr": req.addr, "text": text}

    @router.post("/clipboard/paste")
    async def paste_block(req: PasteRequest) -> dict[str, Any]:
        svc = _svc()
        try:
            written = svc.paste(*svc.cell_at(req.addr), req.text)
        except ValueError as exc:
            raise HTTPException(400, str(exc))
        view = svc.get_view()
        view["written"] = written
        return view

    # -- Formula tooling --

    @router.post("/formula/validate")
    async def validate_formula(req: FormulaRequest) -> dict[str, Any]:
        return _svc().validate_formula(req.text)

    @router.post("/formula/shift")
    async def shift_formula(req: ShiftRequest) -> dict[str, Any]:
        return {"text": EditorService.shift_formula(req.text, req.d_row, req.d_col)}

    @router.get("/formula/functions")
    async def list_functions() -> list[str]:
        return EditorService.list_functions()

    # -- Events --

    @router.get("/events")
    async def get_events(
        level: str | None = Query(None),
        event_type: str | None = Query(None),
        limit: int = Query(200, ge=1, le=2000),
    ) -> list[dict[str, Any]]:
        from minisheet.logging.events import get_sink

        sink = get_sink()
        if sink is None:
            return []
        return sink.read_recent(level=level, event_type=event_type, limit=limit)

    return router

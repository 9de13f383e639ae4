from collections.abc import Callable
from datetime import datetime
from typing import Any, Literal

from fastapi import APIRouter, Depends, Header, Query, Request
from sqlalchemy.orm import Session

from accu_lifecycle.core.auth import resolve_actor
from accu_lifecycle.core.responses import pagination_meta, success_response
from accu_lifecycle.db.session import get_db
from accu_lifecycle.models.entities import Application, ApplicationStatus
from accu_lifecycle.schemas import (
    AnalyticsOut,
    ApplicationCreate,
    ApplicationOut,
    ApplicationQuery,
    ApplicationUpdate,
    ApprovalRequest,
    DashboardOut,
    DeadlineOut,
    DocumentLinkRequest,
    DocumentOut,
    FinalApprovalRequest,
    HistoryEntryOut,
    IssueRequest,
    RejectionRequest,
    ReviewRequest,
    StatsOut,
    StatusChangeRequest,
    StatusInfoOut,
    SubmissionRequest,
)
from accu_lifecycle.services.idempotency import (
    IDEMPOTENCY_HEADER,
    request_scope,
    resolve_cached_response,
    store_response,
)
from accu_lifecycle.services.lifecycle import LifecycleController

router = APIRouter(prefix="/v1", tags=["v1"])


def get_controller(db: Session = Depends(get_db)) -> LifecycleController:
    return LifecycleController(db)


def _application_json(application: Application) -> dict:
    return ApplicationOut.from_entity(application).model_dump(mode="json")


def _idempotent(
    request: Request,
    controller: LifecycleController,
    key: str,
    payload: dict,
    operation: Callable[[], Any],
    render: Callable[[Any], dict] = _application_json,
) -> dict:
    db = controller.db
    scope = request_scope(request.method, request.url.path)
    cached = resolve_cached_response(db, key, scope, payload)
    if cached is not None:
        return cached

    stored: dict = {}

    def _record(result: Any) -> None:
        # Same transaction as the change, so a committed change always has its replay record.
        stored["response"] = render(result)
        store_response(db, key, scope, payload, stored["response"])

    controller.before_commit = _record
    operation()
    return stored["response"]


@router.post("/applications", status_code=201)
def create_application(
    payload: ApplicationCreate,
    request: Request,
    idempotency_key: str = Header(alias=IDEMPOTENCY_HEADER),
    controller: LifecycleController = Depends(get_controller),
):
    actor = resolve_actor(request)
    response = _idempotent(
        request,
        controller,
        idempotency_key,
        payload.model_dump(mode="json"),
        lambda: controller.create(payload, actor),
    )
    return success_response(response)


@router.get("/applications")
def list_applications(
    page: int = Query(default=1, ge=1),
    limit: int = Query(default=10, ge=1, le=100),
    search: str | None = Query(default=None),
    status: ApplicationStatus | None = Query(default=None),
    project_id: str | None = Query(default=None),
    methodology_id: str | None = Query(default=None),
    tenant_id: str | None = Query(default=None),
    submission_date_from: datetime | None = Query(default=None),
    submission_date_to: datetime | None = Query(default=None),
    approval_date_from: datetime | None = Query(default=None),
    approval_date_to: datetime | None = Query(default=None),
    sort_by: str = Query(default="created_at"),
    sort_order: Literal["asc", "desc"] = Query(default="desc"),
    controller: LifecycleController = Depends(get_controller),
):
    params = ApplicationQuery(
        page=page,
        limit=limit,
        search=search,
        status=status,
        project_id=project_id,
        methodology_id=methodology_id,
        tenant_id=tenant_id,
        submission_date_from=submission_date_from,
        submission_date_to=submission_date_to,
        approval_date_from=approval_date_from,
        approval_date_to=approval_date_to,
        sort_by=sort_by,
        sort_order=sort_order,
    )
    items, total = controller.list_applications(params)
    return success_response(
        [_application_json(item) for item in items],
        meta=pagination_meta(params.page, params.limit, total),
    )


@router.get("/applications/dashboard")
def application_dashboard(
    tenant_id: str | None = Query(default=None),
    controller: LifecycleController = Depends(get_controller),
):
    data = controller.get_dashboard(tenant_id)
    data["upcoming_deadlines"] = [DeadlineOut.model_validate(item) for item in data["upcoming_deadlines"]]
    return success_response(DashboardOut(**data).model_dump(mode="json"))


@router.get("/applications/stats")
def application_stats(
    tenant_id: str | None = Query(default=None),
    controller: LifecycleController = Depends(get_controller),
):
    return success_response(StatsOut(**controller.get_stats(tenant_id)).model_dump(mode="json"))


@router.get("/applications/{application_id}")
def get_application(application_id: str, controller: LifecycleController = Depends(get_controller)):
    application, history = controller.get(application_id)
    return success_response(ApplicationOut.from_entity(application, history).model_dump(mode="json"))


@router.put("/applications/{application_id}")
def update_application(
    application_id: str,
    payload: ApplicationUpdate,
    request: Request,
    idempotency_key: str = Header(alias=IDEMPOTENCY_HEADER),
    controller: LifecycleController = Depends(get_controller),
):
    response = _idempotent(
        request,
        controller,
        idempotency_key,
        payload.model_dump(mode="json"),
        lambda: controller.update(application_id, payload),
    )
    return success_response(response)


@router.patch("/applications/{application_id}/status")
def change_application_status(
    application_id: str,
    payload: StatusChangeRequest,
    request: Request,
    idempotency_key: str = Header(alias=IDEMPOTENCY_HEADER),
    controller: LifecycleController = Depends(get_controller),
):
    actor = resolve_actor(request)
    response = _idempotent(
        request,
        controller,
        idempotency_key,
        payload.model_dump(mode="json"),
        lambda: controller.update_status(application_id, payload.status, payload.reason, payload.notes, actor),
    )
    return success_response(response)


@router.post("/applications/{application_id}/submit")
def submit_application(
    application_id: str,
    payload: SubmissionRequest,
    request: Request,
    idempotency_key: str = Header(alias=IDEMPOTENCY_HEADER),
    controller: LifecycleController = Depends(get_controller),
):
    actor = resolve_actor(request)
    response = _idempotent(
        request,
        controller,
        idempotency_key,
        payload.model_dump(mode="json"),
        lambda: controller.submit(application_id, payload, actor),
    )
    return success_response(response)


@router.patch("/applications/{application_id}/activate")
def activate_application(
    application_id: str,
    request: Request,
    idempotency_key: str = Header(alias=IDEMPOTENCY_HEADER),
    controller: LifecycleController = Depends(get_controller),
):
    actor = resolve_actor(request)
    response = _idempotent(
        request,
        controller,
        idempotency_key,
        {},
        lambda: controller.activate(application_id, actor),
    )
    return success_response(response)


@router.post("/applications/{application_id}/approve")
def approve_application(
    application_id: str,
    payload: ApprovalRequest,
    request: Request,
    idempotency_key: str = Header(alias=IDEMPOTENCY_HEADER),
    controller: LifecycleController = Depends(get_controller),
):
    actor = resolve_actor(request)
    response = _idempotent(
        request,
        controller,
        idempotency_key,
        payload.model_dump(mode="json"),
        lambda: controller.approve(application_id, payload, actor),
    )
    return success_response(response)


@router.post("/applications/{application_id}/reject")
def reject_application(
    application_id: str,
    payload: RejectionRequest,
    request: Request,
    idempotency_key: str = Header(alias=IDEMPOTENCY_HEADER),
    controller: LifecycleController = Depends(get_controller),
):
    actor = resolve_actor(request)
    response = _idempotent(
        request,
        controller,
        idempotency_key,
        payload.model_dump(mode="json"),
        lambda: controller.reject(application_id, payload, actor),
    )
    return success_response(response)


@router.patch("/applications/{application_id}/under-review")
def mark_application_under_review(
    application_id: str,
    payload: ReviewRequest,
    request: Request,
    idempotency_key: str = Header(alias=IDEMPOTENCY_HEADER),
    controller: LifecycleController = Depends(get_controller),
):
    actor = resolve_actor(request)
    response = _idempotent(
        request,
        controller,
        idempotency_key,
        payload.model_dump(mode="json"),
        lambda: controller.mark_under_review(application_id, payload.notes, actor),
    )
    return success_response(response)


@router.post("/applications/{application_id}/final-approve")
def final_approve_application(
    application_id: str,
    payload: FinalApprovalRequest,
    request: Request,
    idempotency_key: str = Header(alias=IDEMPOTENCY_HEADER),
    controller: LifecycleController = Depends(get_controller),
):
    actor = resolve_actor(request)
    response = _idempotent(
        request,
        controller,
        idempotency_key,
        payload.model_dump(mode="json"),
        lambda: controller.final_approve(application_id, payload, actor),
    )
    return success_response(response)


@router.post("/applications/{application_id}/issue")
def issue_application_units(
    application_id: str,
    payload: IssueRequest,
    request: Request,
    idempotency_key: str = Header(alias=IDEMPOTENCY_HEADER),
    controller: LifecycleController = Depends(get_controller),
):
    actor = resolve_actor(request)
    response = _idempotent(
        request,
        controller,
        idempotency_key,
        payload.model_dump(mode="json"),
        lambda: controller.issue(application_id, payload.ser_reference, actor),
    )
    return success_response(response)


@router.get("/applications/{application_id}/history")
def application_history(application_id: str, controller: LifecycleController = Depends(get_controller)):
    history = controller.get_history(application_id)
    return success_response([HistoryEntryOut.from_entity(entry).model_dump(mode="json") for entry in history])


@router.get("/applications/{application_id}/analytics")
def application_analytics(application_id: str, controller: LifecycleController = Depends(get_controller)):
    return success_response(AnalyticsOut(**controller.get_analytics(application_id)).model_dump(mode="json"))


@router.get("/applications/{application_id}/deadlines")
def application_deadlines(application_id: str, controller: LifecycleController = Depends(get_controller)):
    deadlines = controller.get_deadlines(application_id)
    return success_response([DeadlineOut.model_validate(item).model_dump(mode="json") for item in deadlines])


@router.get("/applications/{application_id}/documents")
def application_documents(application_id: str, controller: LifecycleController = Depends(get_controller)):
    documents = controller.get_documents(application_id)
    return success_response([DocumentOut.model_validate(item).model_dump(mode="json") for item in documents])


@router.post("/applications/{application_id}/documents", status_code=201)
def add_application_document(
    application_id: str,
    payload: DocumentLinkRequest,
    request: Request,
    idempotency_key: str = Header(alias=IDEMPOTENCY_HEADER),
    controller: LifecycleController = Depends(get_controller),
):
    actor = resolve_actor(request)
    response = _idempotent(
        request,
        controller,
        idempotency_key,
        payload.model_dump(mode="json"),
        lambda: controller.add_document(application_id, payload, actor),
        render=lambda document: DocumentOut.model_validate(document).model_dump(mode="json"),
    )
    return success_response(response)


@router.get("/applications/{application_id}/status-info")
def application_status_info(application_id: str, controller: LifecycleController = Depends(get_controller)):
    return success_response(StatusInfoOut(**controller.get_status_info(application_id)).model_dump(mode="json"))


@router.delete("/applications/{application_id}")
def remove_application(
    application_id: str,
    request: Request,
    idempotency_key: str = Header(alias=IDEMPOTENCY_HEADER),
    controller: LifecycleController = Depends(get_controller),
):
    actor = resolve_actor(request)

    response = _idempotent(
        request,
        controller,
        idempotency_key,
        {},
        lambda: controller.remove(application_id, actor),
        render=lambda _: {"id": application_id, "deleted": True},
    )
    return success_response(response)

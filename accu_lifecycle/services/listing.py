from sqlalchemy import or_
from sqlalchemy.orm import Session

from accu_lifecycle.core.errors import ValidationError
from accu_lifecycle.core.time import to_naive_utc
from accu_lifecycle.models.entities import Application, Project
from accu_lifecycle.schemas.applications import ApplicationQuery

SORTABLE_FIELDS = {
    "created_at": Application.created_at,
    "updated_at": Application.updated_at,
    "submission_date": Application.submission_date,
    "approval_date": Application.approval_date,
    "issued_date": Application.issued_date,
    "units": Application.units,
    "status": Application.status,
    "methodology_id": Application.methodology_id,
}


def query_applications(db: Session, params: ApplicationQuery) -> tuple[list[Application], int]:
    column = SORTABLE_FIELDS.get(params.sort_by)
    if column is None:
        raise ValidationError(
            f"Unsupported sort field: {params.sort_by}",
            details={"allowed": sorted(SORTABLE_FIELDS)},
        )

    query = db.query(Application)
    if params.status:
        query = query.filter(Application.status == params.status)
    if params.project_id:
        query = query.filter(Application.project_id == params.project_id)
    if params.methodology_id:
        query = query.filter(Application.methodology_id == params.methodology_id)
    if params.tenant_id:
        query = query.filter(Application.tenant_id == params.tenant_id)
    if params.search:
        pattern = f"%{params.search.strip()}%"
        query = query.outerjoin(Project, Project.id == Application.project_id).filter(
            or_(
                Application.payload_json["description"].as_string().ilike(pattern),
                Application.ser_reference.ilike(pattern),
                Project.name.ilike(pattern),
            )
        )

    ranges = (
        (Application.submission_date, params.submission_date_from, params.submission_date_to),
        (Application.approval_date, params.approval_date_from, params.approval_date_to),
    )
    for field, lower, upper in ranges:
        if lower:
            query = query.filter(field >= to_naive_utc(lower))
        if upper:
            query = query.filter(field <= to_naive_utc(upper))

    total = query.count()
    ordering = column.asc() if params.sort_order == "asc" else column.desc()
    items = (
        query.order_by(ordering, Application.id.asc())
        .offset((params.page - 1) * params.limit)
        .limit(params.limit)
        .all()
    )
    return items, total

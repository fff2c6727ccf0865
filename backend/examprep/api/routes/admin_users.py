"""Admin-console operator management backed by the in-memory directory."""

import uuid
from typing import Optional

from fastapi import APIRouter, Depends, Query, Request, Response

from ... import errors, schemas
from ...admin_directory import AdminDirectory, UserFilter
from ...auth import require_admin
from ...enums import AdminUserRole, AdminUserStatus
from ..params import positive_int

router = APIRouter(prefix="/admin/users", tags=["admin-users"], dependencies=[Depends(require_admin)])


def get_directory(request: Request) -> AdminDirectory:
    return request.app.state.directory


def _parse_statuses(raw: Optional[str]):
    statuses = []
    for part in (raw or "").split(","):
        part = part.strip()
        if not part:
            continue
        try:
            statuses.append(AdminUserStatus(part))
        except ValueError:
            raise errors.ValidationError(f"invalid status {part.lower()}")
    return statuses


def _parse_role(raw: Optional[str]) -> Optional[AdminUserRole]:
    if not raw:
        return None
    try:
        return AdminUserRole(raw)
    except ValueError:
        raise errors.ValidationError("invalid role")


@router.get("", response_model=schemas.AdminUserList)
def list_users(
    page: Optional[str] = None,
    page_size: Optional[str] = Query(None, alias="pageSize"),
    status: Optional[str] = None,
    role: Optional[str] = None,
    username: str = "",
    directory: AdminDirectory = Depends(get_directory),
):
    """List operators newest first.

    `status` takes a comma-separated list. Unknown statuses or roles are
    rejected with 400; unusable paging values fall back to page 1 of 20.
    """
    flt = UserFilter(
        page=positive_int(page, 1),
        page_size=positive_int(page_size, 20),
        statuses=_parse_statuses(status),
        role=_parse_role(role),
        username=username,
    )
    result = directory.list_users(flt)
    return schemas.AdminUserList(
        items=[schemas.AdminUserOut.model_validate(u) for u in result.items],
        meta=schemas.AdminUsersMeta(page=result.page, page_size=result.page_size, total=result.total),
    )


@router.post("", response_model=schemas.AdminUserOut, status_code=201)
def create_user(payload: schemas.AdminUserCreateRequest, directory: AdminDirectory = Depends(get_directory)):
    return directory.create_user(
        first_name=payload.first_name,
        last_name=payload.last_name,
        username=payload.username,
        email=str(payload.email),
        phone_number=payload.phone_number,
        role=payload.role,
        status=payload.status,
        password=payload.password,
    )


@router.post("/bulk-status", response_model=schemas.AdminBulkStatusResponse)
def bulk_status(payload: schemas.AdminBulkStatusRequest, directory: AdminDirectory = Depends(get_directory)):
    return schemas.AdminBulkStatusResponse(updated=directory.bulk_status(payload.user_ids, payload.status))


@router.post("/bulk-delete", response_model=schemas.AdminBulkDeleteResponse)
def bulk_delete(payload: schemas.AdminBulkDeleteRequest, directory: AdminDirectory = Depends(get_directory)):
    return schemas.AdminBulkDeleteResponse(deleted=directory.bulk_delete(payload.user_ids))


@router.post("/invite", response_model=schemas.AdminInviteResponse, status_code=202)
def invite_user(payload: schemas.AdminInviteRequest, directory: AdminDirectory = Depends(get_directory)):
    expires_at = directory.invite_user(str(payload.email), payload.role, payload.message)
    return schemas.AdminInviteResponse(invited=True, expires_at=expires_at)


@router.patch("/{user_id}", response_model=schemas.AdminUserOut)
def update_user(user_id: uuid.UUID, payload: schemas.AdminUserUpdateRequest, directory: AdminDirectory = Depends(get_directory)):
    """Apply only the fields present in the body."""
    changes = payload.changes()
    if "email" in changes:
        changes["email"] = str(changes["email"])
    return directory.update_user(user_id, changes)


@router.delete("/{user_id}", status_code=204)
def delete_user(user_id: uuid.UUID, directory: AdminDirectory = Depends(get_directory)):
    directory.delete_user(user_id)
    return Response(status_code=204)

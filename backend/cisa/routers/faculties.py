"""Faculty/department router: public listing plus admin CRUD."""
from __future__ import annotations

import logging
from datetime import datetime, timezone

from fastapi import APIRouter, Depends, HTTPException
from sqlmodel import Session, select

from cisa.db import get_session
from cisa.dependencies import require_admin
from cisa.models.faculty import (
    Department,
    DepartmentCreate,
    DepartmentRead,
    DepartmentUpdate,
    Faculty,
    FacultyCreate,
    FacultyRead,
    FacultyUpdate,
)
from cisa.services.tokens import Principal

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/faculties", tags=["faculties"])
admin_router = APIRouter(prefix="/api/admin", tags=["faculties"])


def _faculty_read(faculty: Faculty, departments: list[Department]) -> FacultyRead:
    read = FacultyRead.model_validate(faculty)
    read.departments = [DepartmentRead.model_validate(d) for d in departments]
    return read


def _departments_of(session: Session, faculty_id: str, active_only: bool = False) -> list[Department]:
    stmt = select(Department).where(Department.faculty_id == faculty_id)
    if active_only:
        stmt = stmt.where(Department.is_active == True)  # noqa: E712
    return list(session.exec(stmt.order_by(Department.name)).all())


# --- Public ---


@router.get("", response_model=list[FacultyRead])
async def list_active_faculties(session: Session = Depends(get_session)) -> list[FacultyRead]:
    """Active faculties with their active departments, for the registration form."""
    faculties = session.exec(
        select(Faculty).where(Faculty.is_active == True).order_by(Faculty.name)  # noqa: E712
    ).all()
    return [_faculty_read(f, _departments_of(session, f.id, active_only=True)) for f in faculties]


# --- Faculty CRUD ---


@admin_router.get("/faculties", response_model=list[FacultyRead])
async def list_faculties(
    _admin: Principal = Depends(require_admin),
    session: Session = Depends(get_session),
) -> list[FacultyRead]:
    faculties = session.exec(select(Faculty).order_by(Faculty.name)).all()
    return [_faculty_read(f, _departments_of(session, f.id)) for f in faculties]


@admin_router.post("/faculties", response_model=FacultyRead, status_code=201)
async def create_faculty(
    body: FacultyCreate,
    _admin: Principal = Depends(require_admin),
    session: Session = Depends(get_session),
) -> FacultyRead:
    name = body.name.strip()
    if not name:
        raise HTTPException(status_code=422, detail="Faculty name cannot be empty")
    if session.exec(select(Faculty).where(Faculty.name == name)).first():
        raise HTTPException(status_code=409, detail=f"Faculty '{name}' already exists")

    faculty = Faculty(name=name, code=body.code, is_active=body.is_active)
    session.add(faculty)
    session.commit()
    session.refresh(faculty)
    return _faculty_read(faculty, [])


@admin_router.put("/faculties/{faculty_id}", response_model=FacultyRead)
async def update_faculty(
    faculty_id: str,
    body: FacultyUpdate,
    _admin: Principal = Depends(require_admin),
    session: Session = Depends(get_session),
) -> FacultyRead:
    faculty = session.get(Faculty, faculty_id)
    if not faculty:
        raise HTTPException(status_code=404, detail="Faculty not found")

    if body.name is not None:
        new_name = body.name.strip()
        if not new_name:
            raise HTTPException(status_code=422, detail="Faculty name cannot be empty")
        if new_name != faculty.name:
            if session.exec(select(Faculty).where(Faculty.name == new_name)).first():
                raise HTTPException(status_code=409, detail=f"Faculty '{new_name}' already exists")
            faculty.name = new_name
    if body.code is not None:
        faculty.code = body.code
    if body.is_active is not None:
        faculty.is_active = body.is_active

    faculty.updated_at = datetime.now(timezone.utc)
    session.add(faculty)
    session.commit()
    session.refresh(faculty)
    return _faculty_read(faculty, _departments_of(session, faculty.id))


@admin_router.delete("/faculties/{faculty_id}", status_code=204)
async def delete_faculty(
    faculty_id: str,
    _admin: Principal = Depends(require_admin),
    session: Session = Depends(get_session),
) -> None:
    faculty = session.get(Faculty, faculty_id)
    if not faculty:
        raise HTTPException(status_code=404, detail="Faculty not found")

    # Departments go with their faculty
    for department in _departments_of(session, faculty_id):
        session.delete(department)
    session.delete(faculty)
    session.commit()


# --- Department CRUD ---


@admin_router.get("/departments", response_model=list[DepartmentRead])
async def list_departments(
    faculty_id: str | None = None,
    _admin: Principal = Depends(require_admin),
    session: Session = Depends(get_session),
) -> list[DepartmentRead]:
    stmt = select(Department).order_by(Department.name)
    if faculty_id:
        stmt = stmt.where(Department.faculty_id == faculty_id)
    return [DepartmentRead.model_validate(d) for d in session.exec(stmt).all()]


@admin_router.post("/departments", response_model=DepartmentRead, status_code=201)
async def create_department(
    body: DepartmentCreate,
    _admin: Principal = Depends(require_admin),
    session: Session = Depends(get_session),
) -> DepartmentRead:
    if not session.get(Faculty, body.faculty_id):
        raise HTTPException(status_code=404, detail="Faculty not found")
    name = body.name.strip()
    if not name:
        raise HTTPException(status_code=422, detail="Department name cannot be empty")
    existing = session.exec(
        select(Department).where(
            Department.faculty_id == body.faculty_id,
            Department.name == name,
        )
    ).first()
    if existing:
        raise HTTPException(status_code=409, detail=f"Department '{name}' already exists")

    department = Department(faculty_id=body.faculty_id, name=name, is_active=body.is_active)
    session.add(department)
    session.commit()
    session.refresh(department)
    return DepartmentRead.model_validate(department)


@admin_router.put("/departments/{department_id}", response_model=DepartmentRead)
async def update_department(
    department_id: str,
    body: DepartmentUpdate,
    _admin: Principal = Depends(require_admin),
    session: Session = Depends(get_session),
) -> DepartmentRead:
    department = session.get(Department, department_id)
    if not department:
        raise HTTPException(status_code=404, detail="Department not found")

    if body.name is not None:
        new_name = body.name.strip()
        if not new_name:
            raise HTTPException(status_code=422, detail="Department name cannot be empty")
        if new_name != department.name:
            clash = session.exec(
                select(Department).where(
                    Department.faculty_id == department.faculty_id,
                    Department.name == new_name,
                )
            ).first()
            if clash:
                raise HTTPException(status_code=409, detail=f"Department '{new_name}' already exists")
            department.name = new_name
    if body.is_active is not None:
        department.is_active = body.is_active

    department.updated_at = datetime.now(timezone.utc)
    session.add(department)
    session.commit()
    session.refresh(department)
    return DepartmentRead.model_validate(department)


@admin_router.delete("/departments/{department_id}", status_code=204)
async def delete_department(
    department_id: str,
    _admin: Principal = Depends(require_admin),
    session: Session = Depends(get_session),
) -> None:
    department = session.get(Department, department_id)
    if not department:
        raise HTTPException(status_code=404, detail="Department not found")
    session.delete(department)
    session.commit()

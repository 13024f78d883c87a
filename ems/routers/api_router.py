from fastapi import APIRouter

from ems.routers import (
    attendance,
    auth,
    documents,
    employees,
    functions,
    leave,
    notifications,
    payroll,
    performance,
    search,
)

api_router = APIRouter()

api_router.include_router(auth.router)
api_router.include_router(employees.router)
api_router.include_router(leave.router)
api_router.include_router(attendance.router)
api_router.include_router(payroll.router)
api_router.include_router(performance.router)
api_router.include_router(notifications.router)
api_router.include_router(documents.router)
api_router.include_router(search.router)
api_router.include_router(functions.router)

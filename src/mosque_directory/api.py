from fastapi import APIRouter

from mosque_directory.modules.admin_accounts.admin_router import router as admin_accounts_router
from mosque_directory.modules.admin_accounts.router import router as applications_router
from mosque_directory.modules.audit.router import router as audit_router
from mosque_directory.modules.institutions.router import router as institutions_router

api_router = APIRouter()

api_router.include_router(institutions_router, prefix="/institutions", tags=["Institutions"])

api_router.include_router(applications_router, prefix="/applications", tags=["Applications"])

api_router.include_router(
    admin_accounts_router,
    prefix="/admin/accounts",
    tags=["Admin - Accounts"],
)

api_router.include_router(
    audit_router,
    prefix="/admin/audit-logs",
    tags=["Admin - Audit Log"],
)

"""
Admin Accounts Module

Lifecycle of the accounts that administer institutions:
pending -> approved, rejected, removed, institution_deleted, code_regenerated,
and back to pending through reapplication.

API Endpoints:
- POST /applications - Apply for an institution with its verification code
- GET /applications/me - Applicant's own status
- POST /applications/me/reapply - Reapply after being released
- POST /applications/me/validate-code - Restore access after a code change
- /admin/accounts/... - Super admin review (list, stats, approve, reject,
  remove, allow-reapply)

Rules:
- At most one approved admin per institution
- Three rejections ban an account permanently
- Every state-changing call writes exactly one audit entry

Routers and services are imported from their submodules.
"""

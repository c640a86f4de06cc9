"""
Failure kinds carried by service results.

Services report failures as (error_kind, messages) instead of raising, so
callers can tell a bad input from a refused state change or a lease conflict.
"""
KIND_NOT_FOUND = "not_found"
KIND_VALIDATION = "validation"
KIND_STATE_GUARD = "state_guard"
KIND_LEASE_CONFLICT = "lease_conflict"
KIND_STORE = "store"

HTTP_STATUS_BY_KIND = {
    KIND_NOT_FOUND: 404,
    KIND_VALIDATION: 422,
    KIND_STATE_GUARD: 409,
    KIND_LEASE_CONFLICT: 409,
    KIND_STORE: 500,
}

"""
LensCritique Backend: Services Layer
=====================================

What:  Business rules between the routes (HTTP) and the managed backend.
How:   Each service receives an AsyncSession per call and talks to the
       backend's REST collaborators through the shared clients below.

Service Inventory:
    - identity:         auth REST client, sessions, auth-state subscriptions
    - storage_service:  image validation and uploads to the `photos` bucket
    - backend_errors:   missing-relation / policy-denial classification
    - counters:         the two atomic counter procedures
    - profile_service:  profile lookup, self-healing, onboarding, profile page
    - session_context:  per-request AppContext and the route guard
    - post_service:     publication, feed, lucky match
    - review_service:   the three-step review workflow
    - admin_service:    operator shortcuts, sample data, remediation SQL
"""

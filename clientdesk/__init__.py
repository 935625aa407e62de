"""
clientdesk: client intake and project lifecycle backend.

Clients submit intakes ("briefings"), staff approve them into tracked
projects with four milestones, and scheduled retention policies warn,
delete, or anonymize stale personal data.
"""

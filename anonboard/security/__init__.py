"""Security audit trail for privileged moderation actions."""

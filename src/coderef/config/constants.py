"""Configuration constants.

This module contains truly constant values that should NOT be user-configurable.
These are protocol constraints and implementation details.

For configurable values, see models.py (ConsumerConfig, NotificationsConfig, etc.).
"""

# =============================================================================
# Link Syntax
# =============================================================================

LINK_SCHEME = "github://"
"""Scheme prefix that marks a markdown link as a tracked code reference."""

# =============================================================================
# Event Queue
# =============================================================================

PENDING_BATCH_MAX = 500
"""Hard cap on pending events pulled in a single batch."""

PENDING_BATCH_DEFAULT = 50
"""Default pending events pulled per batch."""

# =============================================================================
# Notifications
# =============================================================================

TRUNCATION_MARKER = "..."
"""Appended to snippet text cut at the configured content budget."""

# =============================================================================
# Webhook Protocol
# =============================================================================

SIGNATURE_HEADER = "X-Hub-Signature-256"
EVENT_HEADER = "X-GitHub-Event"
DELIVERY_HEADER = "X-GitHub-Delivery"
SIGNATURE_PREFIX = "sha256="

"""
Place suggestion intake.

Responsibilities:
- Validate that a suggestion names a restaurant and its address.
- Trim and truncate every submitted field to a fixed length.
- Log and keep pending suggestions for admin review.
"""

"""
Notifications app.

Stores in-app notification records for users. Records are written by
other apps through NotificationService (e.g. "Proposal Accepted!" when a
client's escrow payment is confirmed). Push/email delivery is not part of
this app.
"""

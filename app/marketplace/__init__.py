"""
Marketplace application.

Minimal Job and Proposal records. Posting, searching and matching happen
elsewhere; this app only holds the state the escrow payment flow reads
(who the client is, which proposal is being paid) and writes (proposal
accepted, job in progress / completed, payment status).
"""

"""
Businesses app: business listings and their publication state.

A business moves through three independent fields:
    payment_status: pending -> paid | failed   (written by payment reconciliation)
    is_approved:    set by platform admins      (only when payment_status == paid)
    status:         draft -> published | archived (written by the owner)
"""

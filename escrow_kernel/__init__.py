"""
Escrow Kernel

A ledger-resident protocol core for freelance engagements with:
- Project escrow (fund custody between client and freelancer)
- Milestone tracking per project
- Admin-attested skill verification and peer endorsements
- Atomic, role-gated transitions
- Tamper-evident event trail
"""

__version__ = "0.1.0"

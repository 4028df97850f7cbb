"""
HTTP routers.

WHY: One router per audience (anonymous, admin console, department
portal, account management) so each module carries a single guard.
"""

"""
TeamDesk

Backend for a team workspace SaaS: account signup and sessions,
guided onboarding, organizations, workspaces and team invitations.
"""

__version__ = "1.0.0"

"""Helpdesk ticketing portal: authentication, session authorization, ticket workflow and audit trail."""

__version__ = "0.1.0"

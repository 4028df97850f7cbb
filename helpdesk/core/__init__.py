"""Core building blocks: settings, constants, exceptions, credentials and dependencies."""

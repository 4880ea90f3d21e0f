"""Insult Bot - Slack responder that insults on request from a user-extensible word list."""

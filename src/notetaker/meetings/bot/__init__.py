"""Meeting bot management -- Recall.ai bot lifecycle and control.

Provides RecallClient for Recall.ai REST API interaction, BotManager for
the bot state machine (creation, webhook events, poll reconciliation,
transcript retrieval), and BotScheduler for the periodic background passes.
"""

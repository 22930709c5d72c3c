"""
Services module for the task command gateway.

This module contains:
- ai_chat: conversational command gateway (providers, context, commands)
"""

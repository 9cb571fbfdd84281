"""Outbound notifications"""
from .email_notifier import EmailNotifier, render_new_lead_message

__all__ = ["EmailNotifier", "render_new_lead_message"]

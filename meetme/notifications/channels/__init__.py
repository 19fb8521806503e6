"""Delivery channels: email (SendGrid), web push (VAPID) and in-app rows."""

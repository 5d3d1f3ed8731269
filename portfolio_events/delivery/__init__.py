"""Delivery adapters: forward created notifications outside the dashboard."""

from portfolio_events.delivery.email import EmailDeliveryAdapter

__all__ = ["EmailDeliveryAdapter"]

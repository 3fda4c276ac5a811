"""Approval workflow service."""

"""
Services module for relay logic.

This module contains the pieces of the relay pipeline (URL building,
forwarding, composition), keeping them separate from the API endpoints.
"""

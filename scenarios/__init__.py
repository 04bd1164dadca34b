"""Demoblaze user behaviors and their locust wiring."""

"""Domestik bookkeeping backend."""

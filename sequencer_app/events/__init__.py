"""Sequence run events and their publication to observers."""

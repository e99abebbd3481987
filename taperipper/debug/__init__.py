"""Unwind table entries and address lookup over them."""
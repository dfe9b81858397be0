"""Tally XML voucher decoding."""

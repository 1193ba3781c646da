"""
Billing App - Billing Cycles and Charge Allocation

Turns a room's raw bills (rent, electricity, water, internet), its members'
presence and payer flags into per-member charges, tracks payments and
manages the cycle lifecycle (active -> completed -> closed).
"""

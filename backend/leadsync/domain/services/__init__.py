"""Domain services: pure lead reconciliation and presentation logic"""

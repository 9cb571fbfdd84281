"""Lead sync backend: conversation reconciliation and caller tracking"""

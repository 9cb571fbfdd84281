"""Domain models and pure services"""

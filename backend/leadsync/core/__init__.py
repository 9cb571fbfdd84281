"""Core configuration and errors"""

"""Adapters for Supabase, the conversation provider, email and LLMs"""

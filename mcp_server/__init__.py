"""
Auxiliary MCP tool server that brokers prompt templates for the PINNLO API.
"""

"""Wheels and Glass CRM — quote intake, customers and job dispatch."""

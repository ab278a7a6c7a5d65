"""HRMS bulk import service."""

"""Service layer - every operation returns a ServiceResult.

Services depend on the domain and infrastructure layers.  They never
import from commands or output.
"""

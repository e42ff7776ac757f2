"""
Export of takeoff totals and material assignments for pricing.
"""

from takeoff_editor.export.payload import ApprovePayload, build_approve_payload, material_assignments

__all__ = ["ApprovePayload", "build_approve_payload", "material_assignments"]

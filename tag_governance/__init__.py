"""
Tag Governance Engine
=====================
Finds Azure resources whose department-code tag uses a non-canonical key
(e.g. `Dept`, `Department`, `DeptId`) and, under explicit operator control,
rewrites them to the canonical key (`DeptCode`).

`audit` is strictly read-only. `remediate` deletes each variant key and
merges the canonical key with the captured value, one item at a time.
"""

__version__ = "1.0.0"

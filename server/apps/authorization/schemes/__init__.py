"""Credential schemes understood by the authorization engine.

Every configured entry exposes ``evaluate()`` returning one of:

- ``Allowed``: the credential identified this entry and passed;
- ``Denied(scheme)``: the credential identified this entry but failed;
- ``None``: the credential does not belong to this entry.

The engine stops at the first non-``None`` outcome.
"""

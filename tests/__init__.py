"""
Test suite for the Farm Worker Housing Management System.

Test Organization:
- integration/ - End-to-end API flows across apps
- App-specific tests live beside the code (e.g., farms/test_housing_api.py)
"""

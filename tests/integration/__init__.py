"""API tests"""

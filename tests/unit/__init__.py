"""Unit tests"""

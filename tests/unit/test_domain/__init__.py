"""Domain layer tests"""

"""Case store tests"""

"""Внутренние модули генератора"""

"""Thesis repository: document storage with a review and publication workflow"""

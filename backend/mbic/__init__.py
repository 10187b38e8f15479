"""MBIC Sales Insights backend"""

"""Creative Studio Gateway web backend"""

"""
Zonaprop Scraper API package.
"""

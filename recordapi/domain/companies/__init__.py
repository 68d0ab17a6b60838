"""
Companies bounded context: the company record type served by the API.
"""

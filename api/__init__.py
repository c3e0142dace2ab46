"""
REST API routers for the Medical Document Explainer
"""

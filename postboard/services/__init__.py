"""Business logic services.

Services contain all business logic and are called by routes.
Services accept their stores explicitly so they can be driven with fakes.
"""

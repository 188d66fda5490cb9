"""VenueDesk - booking and facility approval service"""

# Services package init
"""
CatTrack Backend: Services Layer
=================================

What:  Business logic between the routes (HTTP) and the database.
How:   Services take a session plus validated schemas, apply the rules and
       return response models or MutationResults.

Service Inventory:
    - AuthService:  password hashing, credential check, bearer tokens
                    (one instance per app, kept on app.state)
    - UserService:  registration and self-service account changes
    - CatService:   cat CRUD, owner/admin gates, area queries
    - FileService:  image validation, storage, EXIF GPS, cleanup
"""

"""
StoreHub Backend: Services Layer
=================================

What:  Business rules between the routes (HTTP) and the database.
How:   Repositories own a session factory and open one transaction per
       operation; the upload steps are plain objects. The app factory builds
       them once and routes receive them through dependencies.

Service Inventory:
    - StoreRepository:  store writes, lookups, tag counts, text and geo search
    - UserRepository:   user lookup and the heart toggle
    - UploadFilter:     accepts only image/* uploads
    - ImageResizer:     resizes to a fixed width and saves under the upload dir
    - validation:       typed checks on submitted store fields
    - slugs:            URL slugs and collision suffixes
    - geo:              haversine distance and bounding boxes
    - ownership:        author-only edit check
"""

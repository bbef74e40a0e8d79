# Services package init
"""
PIEM Backend — Services Layer
==============================

What:  Resource logic between routes (HTTP) and the document store.
How:   One generic `ResourceService` configured per collection by a
       `ResourceDescriptor`; per-resource rules live in hook subclasses.

Service Inventory:
    - resource_service.py:  ResourceService, ResourceDescriptor, ResourceHooks
    - resources.py:         USER/CATEGORY/INVENTORY/SUPPLIER descriptors + hooks
    - policies.py:          Caller and the ownership policies
    - auth_service.py:      GitHub profile → user document
"""

# Services package init
"""
User Service — Services Layer
==============================

Service Inventory:
    - BlobUploader:   streams profile photos to Azure Blob Storage
    - QueuePublisher: sends user records to the Azure Service Bus queue
    - UserService:    orchestrates upload → publish, and listing via UserStore

Every service is constructed by create_app() with explicit arguments and
can be replaced with a substitute in tests.
"""

"""
Service Layer Architecture

This package contains the business logic behind the corporate API. Route
handlers resolve the caller's CompanyContext and hand it, together with a
document store client, to the services below. Services provide:

1. **Company scoping**: every read and write is tied to an explicit context
2. **Business Logic Separation**: Clean separation of concerns from route handlers
3. **Testability**: Services take their store client as a constructor argument
4. **Error Handling**: Reads raise ServiceError subclasses, writes return
   (success, error_message) tuples

Services Architecture:
- **CompanyService**: Company lookup, signup, KYC submission and status
- **AccountService**: Relational account mirror (signup/signin)
- **CollectionService**: Company-scoped reads of orders, drivers and vehicles
- **ReportingService**: Dashboard statistics, payment and tracking views
- **FilterService**: Search, status filters and pagination
- **OrderService**: Order upserts, deletes and payment settlement
- **DriverService**: Driver registration, approval workflows, documents
- **VehicleService**: Vehicle writes under the hierarchical key
- **FileService**: CDN uploads and file validation
- **NotificationService**: Support ticket relay
- **TransactionHelper**: Mutation wrappers, bounded retry, compensation

Import services from their modules, e.g. ``from services.order_service import OrderService``.
"""

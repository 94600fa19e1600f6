from fastapi import APIRouter, Depends, HTTPException, Request
from fastapi.responses import PlainTextResponse

from orderpay import errors
from orderpay.auth import current_user_id
from orderpay.bridge import PaymentIntentBridge
from orderpay.ledger import OrderLedger
from orderpay.schemas import (
    CheckoutResponse,
    LoginRequest,
    OrderCreate,
    OrderRead,
    RegisterRequest,
    UserRead,
)
from orderpay.users import UserDirectory

router = APIRouter()


def get_ledger(request: Request) -> OrderLedger:
    return request.app.state.ledger


def get_bridge(request: Request) -> PaymentIntentBridge:
    return request.app.state.bridge


def get_users(request: Request) -> UserDirectory:
    return request.app.state.users


@router.get("/", response_class=PlainTextResponse)
def health():
    return "Server Running"


@router.post("/register", status_code=201)
def register(request: RegisterRequest, users: UserDirectory = Depends(get_users)):
    try:
        user = users.register(request.name, request.email, request.password)
    except (errors.ValidationError, errors.DuplicateUser) as exc:
        raise HTTPException(status_code=400, detail=str(exc))

    return {"message": "User registered successfully", "user": UserRead.model_validate(user)}


@router.post("/login")
def login(request: LoginRequest, http: Request, users: UserDirectory = Depends(get_users)):
    try:
        user = users.authenticate(request.email, request.password)
    except errors.InvalidLogin as exc:
        raise HTTPException(status_code=400, detail=str(exc))

    token = http.app.state.verifier.issue(user.id)
    return {"token": token, "user": UserRead.model_validate(user)}


@router.get("/profile", response_model=UserRead)
def profile(user_id: str = Depends(current_user_id), users: UserDirectory = Depends(get_users)):
    user = users.get(user_id)
    if not user:
        raise HTTPException(status_code=404, detail="User not found")
    return user


def _checkout(order, ledger: OrderLedger, bridge: PaymentIntentBridge) -> CheckoutResponse:
    try:
        handle = bridge.open_intent(order)
    except errors.BridgeError as exc:
        # Order stays pending with no payment reference; safe to retry
        raise HTTPException(status_code=502, detail=str(exc))
    except errors.AlreadyResolved as exc:
        raise HTTPException(status_code=409, detail=str(exc))
    except errors.AlreadyAttached as exc:
        raise HTTPException(status_code=409, detail=str(exc))

    return CheckoutResponse(
        order=OrderRead.model_validate(ledger.get(order.id)),
        client_secret=handle.client_secret,
    )


@router.post("/orders", response_model=CheckoutResponse, status_code=201)
def create_order(
    request: OrderCreate,
    user_id: str = Depends(current_user_id),
    ledger: OrderLedger = Depends(get_ledger),
    bridge: PaymentIntentBridge = Depends(get_bridge),
):
    try:
        order = ledger.create_order(user_id, request.product_ref, request.amount)
    except errors.ValidationError as exc:
        raise HTTPException(status_code=400, detail=str(exc))

    return _checkout(order, ledger, bridge)


@router.get("/orders", response_model=list[OrderRead])
def list_orders(user_id: str = Depends(current_user_id), ledger: OrderLedger = Depends(get_ledger)):
    return ledger.find_by_owner(user_id)


def _owned_order(order_id: str, user_id: str, ledger: OrderLedger):
    order = ledger.get(order_id)
    if not order or order.owner_id != user_id:
        raise HTTPException(status_code=404, detail="Order not found")
    return order


@router.get("/orders/{order_id}", response_model=OrderRead)
def get_order(
    order_id: str,
    user_id: str = Depends(current_user_id),
    ledger: OrderLedger = Depends(get_ledger),
):
    return _owned_order(order_id, user_id, ledger)


@router.post("/orders/{order_id}/payment-intent", response_model=CheckoutResponse)
def reopen_payment_intent(
    order_id: str,
    user_id: str = Depends(current_user_id),
    ledger: OrderLedger = Depends(get_ledger),
    bridge: PaymentIntentBridge = Depends(get_bridge),
):
    order = _owned_order(order_id, user_id, ledger)
    return _checkout(order, ledger, bridge)
